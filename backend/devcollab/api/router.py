"""
Main API router that includes all endpoint routers
"""

from fastapi import APIRouter

from devcollab.api import profile, scheduler_status, suggestions

# Create main API router
api_router = APIRouter(prefix="/api/v1")

# Include all route modules
api_router.include_router(suggestions.router)
api_router.include_router(profile.router)
api_router.include_router(scheduler_status.router)


# Add a simple health check for the API
@api_router.get("/health")
async def api_health():
    """API health check endpoint"""
    return {
        "status": "healthy",
        "message": "DevCollab Suggestions API is running",
        "endpoints": {
            "suggestions": "/api/v1/suggestions",
            "profile": "/api/v1/profile",
            "scheduler": "/api/v1/scheduler"
        }
    }
