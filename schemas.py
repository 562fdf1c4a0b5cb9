from datetime import datetime, timezone
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from config import Settings
from models import ClickEvent, Link


def as_utc(value: datetime) -> datetime:
    # BSON dates are UTC but come back naive unless the client is tz_aware
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Request DTOs
class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Name is required")
        return v.strip()


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class LinkCreateRequest(CamelModel):
    # 'url' and 'customUrl' are the JSON keys
    url: str = Field(..., min_length=1)
    custom_url: Optional[str] = None


# Response DTOs
class TokenResponse(BaseModel):
    token: str


class MessageResponse(BaseModel):
    message: str


class ClickEventResponse(CamelModel):
    timestamp: UtcDatetime
    ip: str
    city: str
    region: str
    country: str
    browser: Optional[str] = None
    os: Optional[str] = None
    device: Optional[str] = None
    referrer: Optional[str] = None

    @classmethod
    def from_event(cls, event: ClickEvent) -> "ClickEventResponse":
        return cls(**event.model_dump())


class LinkResponse(CamelModel):
    id: str
    full_url: str
    short_code: str
    short_url: str
    click_count: int
    click_events: List[ClickEventResponse]
    qr_code: Optional[str] = None
    created_at: UtcDatetime

    @classmethod
    def from_link(cls, link: Link, settings: Settings) -> "LinkResponse":
        return cls(
            id=str(link.id),
            full_url=link.full_url,
            short_code=link.short_code,
            short_url=settings.short_url(link.short_code),
            click_count=link.click_count,
            click_events=[ClickEventResponse.from_event(e) for e in link.click_events],
            qr_code=link.qr_code,
            created_at=link.created_at,
        )


class AnalyticsResponse(CamelModel):
    id: str
    full_url: str
    short_url: str
    click_count: int
    click_events: List[ClickEventResponse]
    created_at: UtcDatetime

    @classmethod
    def from_link(cls, link: Link, settings: Settings) -> "AnalyticsResponse":
        return cls(
            id=str(link.id),
            full_url=link.full_url,
            short_url=settings.short_url(link.short_code),
            click_count=link.click_count,
            click_events=[ClickEventResponse.from_event(e) for e in link.click_events],
            created_at=link.created_at,
        )
