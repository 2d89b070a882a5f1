"""API v1 router aggregation.

Combines all v1 route modules into a single router. Candidate routes live
under /candidate, HR routes under /hr.
"""

from __future__ import annotations

from fastapi import APIRouter

from api.v1.routes.analyses import router as analyses_router
from api.v1.routes.assignments import router as assignments_router
from api.v1.routes.candidates import router as candidates_router
from api.v1.routes.jobs import router as jobs_router
from api.v1.routes.matches import candidate_router as candidate_matches_router
from api.v1.routes.matches import hr_router as hr_matches_router
from api.v1.routes.tracks import router as tracks_router

api_v1_router = APIRouter()

api_v1_router.include_router(candidates_router, prefix="/candidate", tags=["Candidate"])
api_v1_router.include_router(analyses_router, prefix="/candidate", tags=["Repository Analysis"])
api_v1_router.include_router(tracks_router, prefix="/candidate", tags=["Tracks"])
api_v1_router.include_router(candidate_matches_router, prefix="/candidate", tags=["Matches"])
api_v1_router.include_router(assignments_router, prefix="/candidate", tags=["AI-PM Assessment"])
api_v1_router.include_router(jobs_router, prefix="/hr", tags=["HR Jobs"])
api_v1_router.include_router(hr_matches_router, prefix="/hr", tags=["HR Applications"])
