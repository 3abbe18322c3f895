"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. This protects every video route without
modifying individual handlers; the resolved user is available on
request.state.user. The users router mixes open routes (register,
login, refresh) with protected ones, so it declares auth per route.
"""

from fastapi import APIRouter, Depends

from vidtube.api.health import router as health_router
from vidtube.api.users import router as users_router
from vidtube.api.videos import router as videos_router
from vidtube.auth.dependencies import get_current_user

# All protected routers require authentication
_auth = [Depends(get_current_user)]

api_router = APIRouter(prefix="/api/v1")

# Open routes (auth declared per route)
api_router.include_router(health_router, tags=["health"])
api_router.include_router(users_router, tags=["users"])

# Protected routes: require a valid access token
api_router.include_router(videos_router, tags=["videos"], dependencies=_auth)
