"""Master API router: includes all sub-routers."""

from fastapi import APIRouter

from .routes.incidents import router as incidents_router
from .routes.users import router as users_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(incidents_router)
api_router.include_router(users_router)
