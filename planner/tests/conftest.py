import os
import sys
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

import pytest
from fastapi.testclient import TestClient
import fakeredis.aioredis as fakeredis

import planner.main as main
from planner import lifespan
from planner.config import clear_settings_cache

OWNER_ID = "owner-1"
OWNER_HEADERS = {"X-User-Id": OWNER_ID, "X-User-Name": "Olive"}
STRANGER_HEADERS = {"X-User-Id": "someone-else"}


@pytest.fixture(autouse=True)
def _fresh_settings():
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def fake_redis():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def client(monkeypatch, fake_redis):
    async def fake_init_redis():
        return fake_redis

    async def fake_init_database():
        return True

    monkeypatch.setattr(lifespan, "init_redis", fake_init_redis)
    monkeypatch.setattr(lifespan, "init_database", fake_init_database)

    with TestClient(main.app) as c:
        yield c


@pytest.fixture
def make_plan():
    def _make(**overrides) -> dict:
        row = {
            "id": "plan-1",
            "slug": "abc123defg",
            "name": "Team offsite",
            "description": None,
            "start_date": "2024-03-01",
            "end_date": "2024-03-03",
            "mode": "DATE_RANGE",
            "available_dates": [],
            "time_windows": None,
            "desired_duration": None,
            "creator_id": OWNER_ID,
            "creator_name": "Olive",
            "created_at": "2024-02-20T10:00:00+00:00",
        }
        row.update(overrides)
        return row

    return _make


@pytest.fixture
def make_response():
    counter = iter(range(1, 1000))

    def _make(guest_name: str, selected_dates: list[str], **overrides) -> dict:
        n = next(counter)
        row = {
            "id": f"resp-{n}",
            "plan_id": "plan-1",
            "guest_name": guest_name,
            "selected_dates": selected_dates,
            "comment": None,
            "selected_time_windows": None,
            "created_at": f"2024-02-21T10:{n:02d}:00+00:00",
        }
        row.update(overrides)
        return row

    return _make
