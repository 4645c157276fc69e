"""
API v1 router aggregating all endpoints.
"""

from fastapi import APIRouter

from api.v1.candidates import router as candidates_router
from api.v1.elections import router as elections_router
from api.v1.votes import router as votes_router

router = APIRouter()

router.include_router(elections_router, prefix="/elections", tags=["Elections"])
router.include_router(candidates_router, prefix="/candidates", tags=["Candidates"])
router.include_router(votes_router, prefix="/votes", tags=["Votes"])
