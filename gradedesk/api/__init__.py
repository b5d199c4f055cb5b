from gradedesk.api.admin import router as admin_router
from gradedesk.api.analysis import router as analysis_router
from gradedesk.api.health import router as health_router
from gradedesk.api.service_tiers import router as service_tiers_router
from gradedesk.api.submissions import router as submissions_router

__all__ = [
    "admin_router",
    "analysis_router",
    "health_router",
    "service_tiers_router",
    "submissions_router",
]
