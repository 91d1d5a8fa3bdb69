from typing import Literal

from fastapi import APIRouter, Depends, Query

from ..database import DatabaseSessionManager, get_session_manager
from ..identity import Caller, require_admin
from ..schemas import AdminBusinessListResponse, BusinessResponse, DashboardResponse, StatusUpdateRequest
from ..services.business_service import BusinessDirectory
from ..services.dashboard_service import DashboardService
from ..services.listing_service import ListingParams, ListingService
from ..services.pagination import resolve_limit
from .businesses import get_business_directory

router = APIRouter(prefix="/admin", tags=["admin"])


def get_listing_service(db: DatabaseSessionManager = Depends(get_session_manager)) -> ListingService:
    return ListingService(db, db.settings)


def get_dashboard_service(db: DatabaseSessionManager = Depends(get_session_manager)) -> DashboardService:
    return DashboardService(db, db.settings)


@router.get("/businesses", response_model=AdminBusinessListResponse)
async def list_businesses(
    page: int = Query(default=1),
    limit: int | None = Query(default=None),
    business_type: str | None = Query(default=None, alias="businessType"),
    time: str = Query(default="all"),
    sort_by: str = Query(default="latest", alias="sortBy"),
    _admin: Caller = Depends(require_admin),
    service: ListingService = Depends(get_listing_service),
) -> AdminBusinessListResponse:
    params = ListingParams(
        page=page,
        limit=resolve_limit(limit, service.settings.default_page_size, service.settings.max_page_size),
        business_type=business_type,
        time=time,
        sort_by=sort_by,
    )
    return await service.list_businesses(params)


@router.patch("/businesses/{business_id}/status", response_model=BusinessResponse)
async def toggle_business_status(
    business_id: int,
    payload: StatusUpdateRequest,
    _admin: Caller = Depends(require_admin),
    directory: BusinessDirectory = Depends(get_business_directory),
) -> BusinessResponse:
    return await directory.set_status(business_id, payload.status)


@router.get("/dashboard", response_model=DashboardResponse)
async def admin_dashboard(
    range_token: Literal["day", "week", "month"] = Query(default="day", alias="range"),
    _admin: Caller = Depends(require_admin),
    service: DashboardService = Depends(get_dashboard_service),
) -> DashboardResponse:
    return await service.admin_dashboard(range_token)
