"""Liveness and readiness endpoints."""

from fastapi import APIRouter

from atlas.features.analytics.repository import InMemoryAnalyticsRepository, get_repository

router = APIRouter(tags=["health"])


@router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz():
    """Report which analytics store is serving requests."""
    repository = get_repository()
    store = "memory" if isinstance(repository, InMemoryAnalyticsRepository) else "sql"
    return {"status": "ok", "analyticsStore": store}
