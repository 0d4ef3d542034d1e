import re
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, field_validator


def _parse_iso_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError("Invalid datetime")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError("Invalid datetime")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ISO-8601 string only; numbers and free text are rejected
IsoDatetime = Annotated[datetime, BeforeValidator(_parse_iso_datetime)]

PropertyType = Literal["house", "apartment"]
PropertyStatus = Literal["active", "inactive", "sold"]
CallStatus = Literal["completed", "missed", "failed", "in-progress"]


class RequestBody(BaseModel):
    """Base for client payloads: unknown keys are rejected, not dropped."""
    model_config = ConfigDict(extra="forbid")


# Properties

class PropertyWrite(RequestBody):
    name: str = Field(min_length=1)
    address: Optional[str] = None
    property_type: Optional[PropertyType] = None
    status: PropertyStatus = "active"
    price: Optional[float] = Field(default=None, gt=0, strict=True)
    description: Optional[str] = None


class PropertyRead(BaseModel):
    id: str
    user_id: Optional[str] = None
    name: str
    address: Optional[str] = None
    property_type: Optional[str] = None
    status: str
    price: Optional[float] = None
    description: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class PropertyListResponse(BaseModel):
    properties: List[PropertyRead]


# Calls

# Leading integer prefix: "3abc" -> 3, "2.0" -> 2
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _page_number(value: Any, default: int) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValueError("must be an integer")
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(str(value))
    if not match:
        raise ValueError("must be an integer")
    return int(match.group(1))


class CallListQuery(RequestBody):
    page: int = 1
    limit: int = 10
    startDate: Optional[IsoDatetime] = None
    endDate: Optional[IsoDatetime] = None
    status: Optional[CallStatus] = None
    propertyId: Optional[UUID] = None
    search: Optional[str] = None

    @field_validator("page", mode="before")
    @classmethod
    def clamp_page(cls, v: Any) -> int:
        return max(1, _page_number(v, 1))

    @field_validator("limit", mode="before")
    @classmethod
    def clamp_limit(cls, v: Any) -> int:
        return min(50, max(1, _page_number(v, 10)))


class PropertySummary(BaseModel):
    id: str
    name: str
    address: Optional[str] = None


class AgentSummary(BaseModel):
    id: str
    agent_name: Optional[str] = None


class CallListItem(BaseModel):
    id: str
    call_timestamp: Optional[str] = None
    caller_number: Optional[str] = None
    duration_seconds: Optional[int] = None
    status: str
    recording_url: Optional[str] = None
    summary: Optional[str] = None
    property: Optional[PropertySummary] = None


class Pagination(BaseModel):
    totalItems: int
    currentPage: int
    itemsPerPage: int
    totalPages: int


class CallListResponse(BaseModel):
    calls: List[CallListItem]
    pagination: Pagination


class CallRead(CallListItem):
    user_id: Optional[str] = None
    ai_agent_id: Optional[str] = None
    property_id: Optional[str] = None
    transcript: Optional[Any] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    ai_agent: Optional[AgentSummary] = None


# Tags

class TagCreate(RequestBody):
    name: str = Field(min_length=1, max_length=50)
    color: Optional[str] = None


class TagRead(BaseModel):
    id: str
    name: str
    color: Optional[str] = None
    user_id: Optional[str] = None
    created_at: Optional[str] = None


class TagAssignment(RequestBody):
    tag_id: UUID


# AI agent

class AgentConfigWrite(RequestBody):
    agent_name: str = Field(min_length=1)
    elevenlabs_voice_id: str = Field(min_length=1)
    system_prompt: Optional[str] = None


class AgentConfigRead(BaseModel):
    id: str
    user_id: str
    agent_name: Optional[str] = None
    elevenlabs_voice_id: str
    system_prompt: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Voice(BaseModel):
    id: str
    name: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    previewUrl: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None
    labels: Optional[Dict[str, Any]] = None


class VoiceListResponse(BaseModel):
    voices: List[Voice]


# Scheduling

class BookingLocation(RequestBody):
    optionValue: str
    value: str


class BookingResponses(RequestBody):
    name: str = Field(min_length=1)
    email: EmailStr
    location: Optional[BookingLocation] = None
    notes: Optional[str] = None
    guests: Optional[List[EmailStr]] = None


class BookingCreate(RequestBody):
    eventTypeId: int = Field(strict=True)
    start: IsoDatetime
    end: IsoDatetime
    timeZone: str
    language: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    responses: BookingResponses
    hasHashedBookingLink: Optional[bool] = Field(default=None, strict=True)
    hashedLink: Optional[str] = None
    smsReminderNumber: Optional[str] = None


class EventTypeSummary(BaseModel):
    id: int
    title: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    length: Optional[int] = None
    hidden: Optional[bool] = None
    price: Optional[float] = None
    currency: Optional[str] = None


# Users and auth

MAX_PASSWORD_BYTES = 72


class UserCreate(RequestBody):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8)

    @field_validator("password")
    @classmethod
    def fits_bcrypt(cls, v: str) -> str:
        # bcrypt only accepts 72 bytes of input
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"must be at most {MAX_PASSWORD_BYTES} bytes")
        return v


class UserUpdate(RequestBody):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None


class UserRead(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "UserRead":
        return cls(
            id=row["id"],
            email=row["email"],
            name=row.get("name"),
            createdAt=row.get("created_at"),
            updatedAt=row.get("updated_at"),
        )


class LoginRequest(RequestBody):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class SessionUser(BaseModel):
    id: str
    email: str
    name: Optional[str] = None


class LoginResponse(BaseModel):
    accessToken: str
    tokenType: str = "bearer"
    user: SessionUser


class OnboardingStatus(BaseModel):
    completed: bool
