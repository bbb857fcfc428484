"""Plans repository module for plans and their guest responses."""

import secrets
import string
import uuid
from datetime import UTC, date, datetime
from typing import Any

from psycopg import errors as pg_errors
from psycopg.types.json import Json

from planner.db.core import _get_connection

_PLAN_COLUMNS = (
    "id, slug, name, description, start_date, end_date, mode, available_dates, "
    "time_windows, desired_duration, creator_id, creator_name, created_at"
)
_RESPONSE_COLUMNS = (
    "id, plan_id, guest_name, selected_dates, comment, selected_time_windows, created_at"
)


def _generate_slug(length: int = 10) -> str:
    chars = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(chars) for _ in range(length))


def _plan_row(row: tuple) -> dict[str, Any]:
    return {
        "id": row[0],
        "slug": row[1],
        "name": row[2],
        "description": row[3],
        "start_date": row[4].isoformat(),
        "end_date": row[5].isoformat(),
        "mode": row[6],
        "available_dates": row[7] or [],
        "time_windows": row[8],
        "desired_duration": row[9],
        "creator_id": row[10],
        "creator_name": row[11],
        "created_at": row[12].astimezone(UTC).isoformat(),
    }


def _response_row(row: tuple) -> dict[str, Any]:
    return {
        "id": row[0],
        "plan_id": row[1],
        "guest_name": row[2],
        "selected_dates": row[3],
        "comment": row[4],
        "selected_time_windows": row[5],
        "created_at": row[6].astimezone(UTC).isoformat(),
    }


def _json_or_none(value: Any) -> Json | None:
    return Json(value) if value is not None else None


async def plans_create(
    name: str,
    start_date: str,
    end_date: str,
    mode: str,
    creator_id: str,
    description: str | None = None,
    available_dates: list[str] | None = None,
    time_windows: dict[str, list[dict[str, str]]] | None = None,
    desired_duration: int | None = None,
    creator_name: str | None = None,
    slug_length: int = 10,
) -> dict[str, Any]:
    now = datetime.now(UTC)
    plan_id = uuid.uuid4().hex
    async with _get_connection() as conn:
        for _ in range(10):
            slug = _generate_slug(slug_length)
            try:
                await conn.execute(
                    f"""INSERT INTO plans ({_PLAN_COLUMNS})
                       VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)""",
                    (
                        plan_id,
                        slug,
                        name,
                        description,
                        date.fromisoformat(start_date),
                        date.fromisoformat(end_date),
                        mode,
                        Json(available_dates or []),
                        _json_or_none(time_windows),
                        desired_duration,
                        creator_id,
                        creator_name,
                        now,
                    ),
                )
                return {
                    "id": plan_id,
                    "slug": slug,
                    "name": name,
                    "description": description,
                    "start_date": start_date,
                    "end_date": end_date,
                    "mode": mode,
                    "available_dates": available_dates or [],
                    "time_windows": time_windows,
                    "desired_duration": desired_duration,
                    "creator_id": creator_id,
                    "creator_name": creator_name,
                    "created_at": now.isoformat(),
                }
            except pg_errors.UniqueViolation:
                continue
        raise RuntimeError("Failed to generate unique plan slug")


async def plans_get_by_slug(slug: str) -> dict[str, Any] | None:
    async with _get_connection() as conn:
        row = await (
            await conn.execute(f"SELECT {_PLAN_COLUMNS} FROM plans WHERE slug = %s", (slug,))
        ).fetchone()
        if not row:
            return None
        return _plan_row(row)


async def plans_list_by_creator(creator_id: str) -> list[dict[str, Any]]:
    """List a user's plans, newest first, with their response counts."""
    columns = ", ".join(f"p.{c.strip()}" for c in _PLAN_COLUMNS.split(","))
    async with _get_connection() as conn:
        rows = await conn.execute(
            f"""
            SELECT {columns}, COUNT(r.id) AS response_count
            FROM plans p
            LEFT JOIN plan_responses r ON r.plan_id = p.id
            WHERE p.creator_id = %s
            GROUP BY p.id
            ORDER BY p.created_at DESC
            """,
            (creator_id,),
        )
        result: list[dict[str, Any]] = []
        async for row in rows:
            plan = _plan_row(row)
            plan["response_count"] = row[13]
            result.append(plan)
        return result


async def plans_update_description(plan_id: str, description: str | None) -> dict[str, Any] | None:
    async with _get_connection() as conn:
        row = await (
            await conn.execute(
                f"UPDATE plans SET description = %s WHERE id = %s RETURNING {_PLAN_COLUMNS}",
                (description, plan_id),
            )
        ).fetchone()
        if not row:
            return None
        return _plan_row(row)


async def plans_delete(plan_id: str) -> bool:
    """Delete a plan; its responses go with it through ON DELETE CASCADE."""
    async with _get_connection() as conn:
        row = await (
            await conn.execute("DELETE FROM plans WHERE id = %s RETURNING id", (plan_id,))
        ).fetchone()
        return row is not None


async def responses_create(
    plan_id: str,
    guest_name: str,
    selected_dates: list[str],
    comment: str | None = None,
    selected_time_windows: dict[str, list[dict[str, str]]] | None = None,
) -> dict[str, Any]:
    now = datetime.now(UTC)
    response_id = uuid.uuid4().hex
    async with _get_connection() as conn:
        await conn.execute(
            f"""INSERT INTO plan_responses ({_RESPONSE_COLUMNS})
               VALUES (%s, %s, %s, %s, %s, %s, %s)""",
            (
                response_id,
                plan_id,
                guest_name,
                Json(selected_dates),
                comment,
                _json_or_none(selected_time_windows),
                now,
            ),
        )
    return {
        "id": response_id,
        "plan_id": plan_id,
        "guest_name": guest_name,
        "selected_dates": selected_dates,
        "comment": comment,
        "selected_time_windows": selected_time_windows,
        "created_at": now.isoformat(),
    }


async def responses_list(plan_id: str) -> list[dict[str, Any]]:
    """Responses of a plan in submission order."""
    async with _get_connection() as conn:
        rows = await conn.execute(
            f"SELECT {_RESPONSE_COLUMNS} FROM plan_responses WHERE plan_id = %s ORDER BY created_at ASC, id ASC",
            (plan_id,),
        )
        return [_response_row(row) async for row in rows]


async def responses_get(response_id: str) -> dict[str, Any] | None:
    async with _get_connection() as conn:
        row = await (
            await conn.execute(
                f"SELECT {_RESPONSE_COLUMNS} FROM plan_responses WHERE id = %s", (response_id,)
            )
        ).fetchone()
        if not row:
            return None
        return _response_row(row)


async def responses_delete(response_id: str) -> bool:
    async with _get_connection() as conn:
        row = await (
            await conn.execute("DELETE FROM plan_responses WHERE id = %s RETURNING id", (response_id,))
        ).fetchone()
        return row is not None
