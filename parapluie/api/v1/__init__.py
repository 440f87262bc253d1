"""API v1 router configuration."""

from fastapi import APIRouter

from parapluie.api.v1.onboarding import router as onboarding_router

# Create main v1 router
v1_router = APIRouter(prefix="/v1")

# Include sub-routers
v1_router.include_router(onboarding_router)
