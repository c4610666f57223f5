from fastapi import APIRouter
from community_watch.api.v1.endpoints import auth, reports, email_groups, stats

api_router = APIRouter()

api_router.include_router(auth.router, tags=["Authentication"])
api_router.include_router(reports.router, tags=["Reports"])
api_router.include_router(email_groups.router, prefix="/email-groups", tags=["Email Groups"])
api_router.include_router(stats.router, tags=["Public"])
