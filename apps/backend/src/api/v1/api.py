from fastapi import APIRouter

from .ai import router as ai_router
from .health import router as health_router


# Authentication is handled upstream of this service, so every router is
# mounted without a router-level auth dependency.
api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(ai_router)
