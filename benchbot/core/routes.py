from fastapi import APIRouter

# Import all route modules
from ..routes.health import router as health_router
from ..routes.jobs import router as jobs_router

# Create main router
router = APIRouter()

# Include all route modules
router.include_router(health_router, tags=["Health"])
router.include_router(jobs_router, tags=["Jobs"])
