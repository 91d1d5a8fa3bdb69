from fastapi import APIRouter, Depends, Query, status
from fastapi.exceptions import RequestValidationError

from ..database import DatabaseSessionManager, get_session_manager
from ..identity import Caller, get_caller
from ..schemas import BusinessCollectionResponse, BusinessListResponse, BusinessResponse, CreateBusinessRequest
from ..services.business_service import BusinessDirectory
from ..services.pagination import resolve_limit
from ..services.search_service import SearchParams, SearchService

router = APIRouter(tags=["businesses"])


def get_search_service(db: DatabaseSessionManager = Depends(get_session_manager)) -> SearchService:
    return SearchService(db, db.settings)


def get_business_directory(db: DatabaseSessionManager = Depends(get_session_manager)) -> BusinessDirectory:
    return BusinessDirectory(db, db.settings)


def _price_bound(value: str | None, name: str) -> float | None:
    # Blank bounds count as absent.
    if value is None or not value.strip():
        return None
    try:
        return float(value)
    except ValueError:
        raise RequestValidationError(
            [{"loc": ("query", name), "msg": "Input should be a valid number", "type": "float_parsing"}]
        ) from None


@router.get("/businesses", response_model=BusinessListResponse)
async def search_businesses(
    instrument_family: str | None = Query(default=None, alias="instrumentFamily"),
    select_instrument: str | None = Query(default=None, alias="selectInstrument"),
    service_name: str | None = Query(default=None, alias="serviceName"),
    offer: str | None = Query(default=None),
    price_min: str | None = Query(default=None, alias="priceMin"),
    price_max: str | None = Query(default=None, alias="priceMax"),
    price_sort: str | None = Query(default=None, alias="priceSort"),
    open_now: str | None = Query(default=None, alias="openNow"),
    sort_by_created_at: str | None = Query(default=None, alias="sortByCreatedAt"),
    page: int = Query(default=1),
    limit: int | None = Query(default=None),
    service: SearchService = Depends(get_search_service),
) -> BusinessListResponse:
    settings = service.settings
    params = SearchParams(
        instrument_family=instrument_family,
        instrument_type=select_instrument,
        service_name=service_name,
        category=offer,
        price_min=_price_bound(price_min, "priceMin"),
        price_max=_price_bound(price_max, "priceMax"),
        price_sort=price_sort,
        open_now=open_now == "true",
        sort_by_created_at=sort_by_created_at,
        page=page,
        limit=resolve_limit(limit, settings.default_page_size, settings.max_page_size),
    )
    return await service.search(params)


@router.post("/businesses", response_model=BusinessResponse, status_code=status.HTTP_201_CREATED)
async def create_business(
    payload: CreateBusinessRequest,
    caller: Caller = Depends(get_caller),
    directory: BusinessDirectory = Depends(get_business_directory),
) -> BusinessResponse:
    return await directory.create(caller, payload)


@router.get("/businesses/mine/approved", response_model=BusinessCollectionResponse)
async def my_approved_businesses(
    caller: Caller = Depends(get_caller),
    directory: BusinessDirectory = Depends(get_business_directory),
) -> BusinessCollectionResponse:
    return await directory.my_approved(caller)


@router.get("/businesses/{business_id}", response_model=BusinessResponse)
async def get_business(
    business_id: int,
    directory: BusinessDirectory = Depends(get_business_directory),
) -> BusinessResponse:
    return await directory.get(business_id)
