"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running
and dependencies (database, session store) are reachable.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from linkauth import __version__
from linkauth.auth.dependencies import get_session_manager
from linkauth.auth.session import SessionManager
from linkauth.db.engine import get_db

router = APIRouter()


@router.get("/health")
async def health_check(
    db: AsyncSession = Depends(get_db),
    sessions: SessionManager = Depends(get_session_manager),
):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    try:
        checks["session_store"] = "ok" if await sessions.store.ping() else "error: no reply"
    except Exception as e:
        checks["session_store"] = f"error: {e}"

    status = "healthy" if all(
        v == "ok" for k, v in checks.items() if k != "version"
    ) else "degraded"

    return {"status": status, **checks}
