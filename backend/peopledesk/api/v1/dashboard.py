from typing import Any, List

from fastapi import APIRouter, Depends

from peopledesk.api.deps import get_dashboard_service
from peopledesk.schemas.dashboard import Activity, DashboardMetrics
from peopledesk.services.dashboard import DashboardService

router = APIRouter()


@router.get("/metrics", response_model=DashboardMetrics)
async def read_metrics(service: DashboardService = Depends(get_dashboard_service)) -> Any:
    return await service.metrics()


@router.get("/activities", response_model=List[Activity])
async def read_activities(service: DashboardService = Depends(get_dashboard_service)) -> Any:
    """Most recent hires."""
    return await service.activities()
