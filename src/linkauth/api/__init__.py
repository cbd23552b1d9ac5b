"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Health and auth routers are open. The protected router applies
require_user per route, so each handler still gets the AuthContext.
"""

from fastapi import APIRouter

from linkauth.api.auth import router as auth_router
from linkauth.api.health import router as health_router
from linkauth.api.protected import router as protected_router

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(protected_router, tags=["protected"])
