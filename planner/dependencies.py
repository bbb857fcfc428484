"""Dependency injection for FastAPI endpoints.

Identity comes from headers set by the auth proxy in front of the service.
The header names are configurable through ``AUTH_USER_HEADER`` and
``AUTH_NAME_HEADER``.

Usage in controllers:
    from planner.dependencies import CurrentUser, OptionalBus

    @router.get("/plans")
    async def list_plans(user: CurrentUser):
        ...
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request

from planner import state
from planner.bus import EventBus
from planner.config import get_settings
from planner.errors import ServiceUnavailableError, UnauthorizedError


@dataclass(frozen=True)
class Identity:
    user_id: str
    display_name: str | None = None


def get_optional_identity(request: Request) -> Identity | None:
    """Resolve the current user from proxy headers, or None when anonymous."""
    auth = get_settings().auth
    user_id = (request.headers.get(auth.user_header) or "").strip()
    if not user_id:
        return None
    display_name = (request.headers.get(auth.name_header) or "").strip() or None
    return Identity(user_id=user_id, display_name=display_name)


def get_identity(identity: Identity | None = Depends(get_optional_identity)) -> Identity:
    """Require an authenticated user.

    Raises:
        UnauthorizedError: If no user id header is present.
    """
    if identity is None:
        raise UnauthorizedError()
    return identity


def require_database() -> None:
    """Fail fast when the connection pool was never initialized.

    Raises:
        ServiceUnavailableError: If the database is disabled or failed to start.
    """
    if not state.db_enabled:
        raise ServiceUnavailableError(detail="Database not initialized")


def get_optional_event_bus() -> EventBus | None:
    """Get the EventBus if available, or None."""
    return state.event_bus


CurrentUser = Annotated[Identity, Depends(get_identity)]
OptionalBus = Annotated[EventBus | None, Depends(get_optional_event_bus)]
