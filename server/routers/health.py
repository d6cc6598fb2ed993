"""
Health check endpoints.

- /health: the process is up
- /ready: a new connection would get a table
- /metrics: table and game counters
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Response

from constants import MAX_TABLES

router = APIRouter(tags=["health"])

# Set by main.py at startup
_room_manager = None


def set_health_dependencies(room_manager=None):
    """Give the endpoints access to the table registry."""
    global _room_manager
    _room_manager = room_manager


@router.get("/health")
async def health_check():
    """Liveness: 200 whenever the process can answer."""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ready")
async def readiness_check(response: Response):
    """
    Readiness check - can the app seat another player?

    There are no backing services; the only way to be unready is to be
    out of tables, which returns 503.
    """
    active = len(_room_manager.rooms) if _room_manager is not None else 0
    ready = active < MAX_TABLES
    if not ready:
        response.status_code = 503
    return {
        "status": "ok" if ready else "full",
        "checks": {"tables": {"active": active, "max": MAX_TABLES}},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/metrics")
async def metrics():
    """Expose table metrics for dashboards and alerting."""
    metrics_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if _room_manager is not None:
        metrics_data.update({
            "active_tables": len(_room_manager.rooms),
            "games_in_progress": _room_manager.games_in_progress(),
            "games_finished": _room_manager.games_finished(),
        })

    return metrics_data
