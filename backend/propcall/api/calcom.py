from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
import logging

from fastapi import APIRouter, Depends, Query, Response
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError, handler_boundary
from ..schemas.pydantic_schemas import BookingCreate, EventTypeSummary
from ..services.calcom_client import CalComClient
from ..services.security import Identity
from .deps import get_calcom_client, require_identity

# Set up logger
logger = logging.getLogger(__name__)

router = APIRouter()

AVAILABILITY_WINDOW = timedelta(days=7)
EVENT_TYPE_FIELDS = ("id", "title", "slug", "description", "length", "hidden", "price", "currency")


def _now() -> datetime:
    return datetime.now(timezone.utc)


@router.get("/availability")
@handler_boundary("Availability API")
async def get_availability(
    dateFrom: Optional[str] = Query(default=None),
    dateTo: Optional[str] = Query(default=None),
    eventTypeId: Optional[str] = Query(default=None),
    identity: Identity = Depends(require_identity),
    client: CalComClient = Depends(get_calcom_client),
):
    now = _now()
    params: Dict[str, Any] = {
        "dateFrom": dateFrom or now.isoformat(),
        "dateTo": dateTo or (now + AVAILABILITY_WINDOW).isoformat(),
    }
    if eventTypeId:
        params["eventTypeId"] = eventTypeId
    return await client.get_availability(params)


@router.get("/bookings")
@handler_boundary("Bookings API")
async def list_bookings(
    dateFrom: Optional[str] = Query(default=None),
    dateTo: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
    identity: Identity = Depends(require_identity),
    client: CalComClient = Depends(get_calcom_client),
):
    params: Dict[str, Any] = {"dateFrom": dateFrom or _now().isoformat()}
    if dateTo:
        params["dateTo"] = dateTo
    if status:
        params["status"] = status
    return await client.list_bookings(params)


@router.post("/bookings", status_code=201)
@handler_boundary("Bookings API")
async def create_booking(
    body: BookingCreate,
    identity: Identity = Depends(require_identity),
    client: CalComClient = Depends(get_calcom_client),
):
    if body.end <= body.start:
        raise ValidationError(["End time must be after start time"])
    return await client.create_booking(body.model_dump(mode="json", exclude_none=True))


@router.delete("/bookings/{booking_id}", status_code=204)
@handler_boundary("Bookings API")
async def delete_booking(
    booking_id: str,
    reason: Optional[str] = Query(default=None),
    identity: Identity = Depends(require_identity),
    client: CalComClient = Depends(get_calcom_client),
):
    await client.delete_booking(booking_id, reason)
    return Response(status_code=204)


@router.get("/event-types", response_model=List[EventTypeSummary])
@handler_boundary("Event Types API")
async def list_event_types(
    identity: Identity = Depends(require_identity),
    client: CalComClient = Depends(get_calcom_client),
):
    event_types = await client.list_event_types(identity.id)
    summaries = []
    for et in event_types:
        if not isinstance(et, dict):
            continue
        try:
            summaries.append(EventTypeSummary.model_validate({field: et.get(field) for field in EVENT_TYPE_FIELDS}))
        except PydanticValidationError:
            logger.warning(f"Skipping malformed Cal.com event type: {et.get('id')!r}")
    return summaries
