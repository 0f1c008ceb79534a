"""Shared request dependencies: caller identity and service wiring."""

from datetime import datetime
from typing import Annotated, Optional

from fastapi import Header, Query

from atlas.core.errors import UnauthorizedError, ValidationError
from atlas.features.analytics.engine import AnalyticsEngine
from atlas.features.analytics.repository import get_repository


def current_user_id(
    x_user_id: Annotated[Optional[str], Header(alias="X-User-Id")] = None,
) -> str:
    """Caller identity from the X-User-Id header; missing or blank is 401."""
    if not x_user_id or not x_user_id.strip():
        raise UnauthorizedError("Unauthorized")
    return x_user_id.strip()


def get_analytics_engine() -> AnalyticsEngine:
    return AnalyticsEngine(get_repository())


def fixed_now(
    now: Optional[str] = Query(None, description="Optional ISO timestamp for deterministic testing"),
) -> Optional[datetime]:
    if not now:
        return None
    try:
        return datetime.fromisoformat(now)
    except ValueError:
        raise ValidationError("Invalid 'now' timestamp format. Use ISO 8601.")
