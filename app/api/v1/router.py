# app/api/v1/router.py
from fastapi import APIRouter, Depends

from app.api.v1.endpoints import (
    queue,
    triage,
    visits,
)
from app.dependencies.authz import require_feature

api_router = APIRouter()

# queue routes are gated one by one: the board has its own flag
api_router.include_router(
    visits.router,
    prefix="/visits",
    tags=["visits"],
    dependencies=[Depends(require_feature("enable_queue", "Queue"))],
)
api_router.include_router(queue.router, prefix="/queue", tags=["queue"])
api_router.include_router(
    triage.router,
    prefix="/triage",
    tags=["triage"],
    dependencies=[Depends(require_feature("enable_triage", "Triage"))],
)
