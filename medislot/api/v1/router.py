"""API v1 router aggregating all endpoints."""

from fastapi import APIRouter

from medislot.api.v1 import availability, health, providers, ratings, reservations

api_router = APIRouter()

# Health check
api_router.include_router(
    health.router,
    prefix="/health",
    tags=["health"],
)

# Provider directory
api_router.include_router(
    providers.router,
    prefix="/providers",
    tags=["providers"],
)

# Slot ledger (provider scoped)
api_router.include_router(
    availability.router,
    prefix="/availability",
    tags=["availability"],
)

# Booking and cancellation
api_router.include_router(
    reservations.router,
    prefix="/reservations",
    tags=["reservations"],
)

# Ratings
api_router.include_router(
    ratings.router,
    prefix="/ratings",
    tags=["ratings"],
)
