from datetime import datetime, timezone
from typing import List, Optional

import pymongo
from beanie import Document, Indexed, PydanticObjectId
from pydantic import BaseModel, Field
from pymongo import IndexModel

UNKNOWN = "Unknown"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Document):
    name: str
    email: Indexed(str, unique=True)
    password_hash: str
    created_at: datetime = Field(default_factory=utcnow)

    class Settings:
        name = "users"  # MongoDB collection


class ClickEvent(BaseModel):
    timestamp: datetime = Field(default_factory=utcnow)
    ip: str = UNKNOWN
    city: str = UNKNOWN
    region: str = UNKNOWN
    country: str = UNKNOWN
    browser: Optional[str] = None
    os: Optional[str] = None
    device: Optional[str] = None
    referrer: Optional[str] = None


class Link(Document):
    full_url: str
    short_code: Indexed(str, unique=True)
    owner_id: PydanticObjectId
    click_count: int = 0
    click_events: List[ClickEvent] = Field(default_factory=list)
    qr_code: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

    class Settings:
        name = "links"  # MongoDB collection
        indexes = [
            # One link per (owner, full_url); closes the check-then-insert race
            IndexModel(
                [("owner_id", pymongo.ASCENDING), ("full_url", pymongo.ASCENDING)],
                unique=True,
                name="owner_full_url_unique",
            ),
        ]
