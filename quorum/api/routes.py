"""API router aggregating all route modules."""

from fastapi import APIRouter

from quorum.api.result import router as result_router
from quorum.api.stream import router as stream_router

router = APIRouter()

# Include all sub-routers
router.include_router(result_router, tags=["Rounds"])
router.include_router(stream_router, tags=["Stream"])
