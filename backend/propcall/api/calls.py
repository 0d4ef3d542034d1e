from datetime import datetime, time, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from ..db import Embed, Filter, RowStore, get_db
from ..errors import handler_boundary
from ..schemas.pydantic_schemas import CallListQuery, CallListResponse, CallRead
from ..services.security import Identity
from .deps import require_identity
from .pipeline import OwnedResource, pagination, validate

router = APIRouter()

calls = OwnedResource("call_history", "Call")

LIST_COLUMNS = (
    "id",
    "call_timestamp",
    "caller_number",
    "duration_seconds",
    "status",
    "recording_url",
    "summary",
)
SEARCH_COLUMNS = ("caller_number", "summary")


def end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time(23, 59, 59, 999000), tzinfo=value.tzinfo or timezone.utc)


def call_filters(query: CallListQuery) -> List[Filter]:
    """Conjunctive filters for the optional query parameters that are present."""
    filters: List[Filter] = []
    if query.status:
        filters.append(("eq", "status", query.status))
    if query.propertyId:
        filters.append(("eq", "property_id", str(query.propertyId)))
    if query.startDate:
        filters.append(("gte", "call_timestamp", query.startDate.isoformat()))
    if query.endDate:
        filters.append(("lte", "call_timestamp", end_of_day(query.endDate).isoformat()))
    if query.search:
        filters.append(("ilike_any", SEARCH_COLUMNS, query.search))
    return filters


def call_list_query(
    page: Optional[str] = Query(default=None),
    limit: Optional[str] = Query(default=None),
    startDate: Optional[str] = Query(default=None),
    endDate: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
    propertyId: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
) -> Dict[str, Any]:
    raw = {
        "page": page,
        "limit": limit,
        "startDate": startDate,
        "endDate": endDate,
        "status": status,
        "propertyId": propertyId,
        "search": search,
    }
    return {k: v for k, v in raw.items() if v is not None}


@router.get("", response_model=CallListResponse)
@handler_boundary("Calls API")
async def list_calls(
    identity: Identity = Depends(require_identity),
    raw_query: Dict[str, Any] = Depends(call_list_query),
    db: RowStore = Depends(get_db),
):
    query = validate(CallListQuery, raw_query)
    offset = (query.page - 1) * query.limit
    rows, total = calls.list(
        db,
        identity,
        filters=call_filters(query),
        columns=LIST_COLUMNS,
        embeds=(Embed("property", "properties", "property_id", ("id", "name")),),
        order="call_timestamp",
        desc=True,
        offset=offset,
        limit=query.limit,
    )
    return {"calls": rows, "pagination": pagination(total, query.page, query.limit)}


@router.get("/{call_id}", response_model=CallRead)
@handler_boundary("Call Details API")
async def get_call(call_id: UUID, identity: Identity = Depends(require_identity), db: RowStore = Depends(get_db)):
    return calls.get(
        db,
        identity,
        call_id,
        embeds=(
            Embed("property", "properties", "property_id", ("id", "name", "address")),
            Embed("ai_agent", "ai_agents", "ai_agent_id", ("id", "agent_name")),
        ),
    )
