from fastapi import APIRouter

from app.api.v1 import admin, analytics, assignment_rules, auth, categories, complaints
from app.api.v1 import notifications, sla_policies, widget

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(complaints.router, prefix="/complaints", tags=["complaints"])
api_router.include_router(assignment_rules.router, prefix="/assignment-rules", tags=["assignment-rules"])
api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(sla_policies.router, prefix="/sla-policies", tags=["sla"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
api_router.include_router(widget.router, prefix="/widget", tags=["widget"])
