from typing import Literal

from fastapi import APIRouter, Depends, Query

from ..identity import Caller, get_caller
from ..schemas import BusinessmanDashboardResponse
from ..services.dashboard_service import DashboardService
from .admin import get_dashboard_service

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/businessman", response_model=BusinessmanDashboardResponse)
async def businessman_dashboard(
    range_token: Literal["day", "week", "month"] = Query(default="day", alias="range"),
    caller: Caller = Depends(get_caller),
    service: DashboardService = Depends(get_dashboard_service),
) -> BusinessmanDashboardResponse:
    return await service.businessman_dashboard(caller, range_token)
