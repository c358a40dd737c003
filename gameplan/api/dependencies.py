"""FastAPI dependencies for the calendar router.

Authentication is handled by the hosting backend, which forwards the
authenticated user in the X-User-Id header.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, Header, HTTPException, Request, status
from loguru import logger

from gameplan.calendar.locks import LockStore
from gameplan.calendar.mutations import SqlPlanMutations
from gameplan.calendar.notifications import ChangeNotifier
from gameplan.calendar.service import DailyPlanService
from gameplan.calendar.skips import SkipStore
from gameplan.calendar.sources import SqlPlanSources
from gameplan.config.settings import settings
from gameplan.db.session import get_session

# Process-wide notifier shared by the stores and live services
notifier = ChangeNotifier()


def get_current_user_id(request: Request, x_user_id: str | None = Header(default=None)) -> str:
    """FastAPI dependency returning the user forwarded by the hosting backend.

    Raises:
        HTTPException: 401 if the X-User-Id header is missing or blank
    """
    if not x_user_id or not x_user_id.strip():
        logger.warning(f"Auth failed: Missing X-User-Id header, Path: {request.url.path}, Method: {request.method}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated. Missing X-User-Id header.",
        )
    return x_user_id.strip()


def get_session_factory() -> Callable:
    return get_session


def get_notifier() -> ChangeNotifier:
    return notifier


def get_plan_service(
    sport: str | None = None,
    user_id: str = Depends(get_current_user_id),
    session_factory: Callable = Depends(get_session_factory),
    change_notifier: ChangeNotifier = Depends(get_notifier),
) -> DailyPlanService:
    """Request-scoped plan service for the current user."""
    sport = (sport or settings.default_sport).lower()
    if sport not in {"baseball", "softball"}:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unsupported sport: {sport}")
    return DailyPlanService(
        user_id,
        SqlPlanSources(sport=sport, session_factory=session_factory),
        SqlPlanMutations(session_factory=session_factory, notifier=change_notifier),
        sport=sport,
    )


def get_lock_store(
    session_factory: Callable = Depends(get_session_factory),
    change_notifier: ChangeNotifier = Depends(get_notifier),
) -> LockStore:
    return LockStore(change_notifier, session_factory=session_factory, week_starts_on=settings.week_starts_on)


def get_skip_store(
    session_factory: Callable = Depends(get_session_factory),
    change_notifier: ChangeNotifier = Depends(get_notifier),
) -> SkipStore:
    return SkipStore(change_notifier, session_factory=session_factory)
