"""
Health and metrics routes.
"""
from fastapi import APIRouter
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST

from teamtasks import __version__
from teamtasks.dependencies.services import get_services
from teamtasks.monitoring import get_health_info, get_metrics

router = APIRouter(tags=["health"])


@router.get("/")
def root():
    return {"service": "teamtasks", "version": __version__, "status": "running"}


@router.get("/health")
def health_check():
    """Health check with component status (database, service)."""
    health_info = get_health_info(get_services().db)
    if health_info.get("status") == "unhealthy":
        return JSONResponse(content=health_info, status_code=503)
    return health_info


@router.get("/metrics")
def metrics():
    """Prometheus metrics endpoint."""
    return Response(content=get_metrics(), media_type=CONTENT_TYPE_LATEST)
