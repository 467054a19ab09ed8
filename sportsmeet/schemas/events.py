from datetime import date, datetime, time, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from sportsmeet.models.events import Category
from sportsmeet.schemas.base import CamelModel
from sportsmeet.schemas.users import UserContact, UserSummary


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _parse_bound(value: Any, *, end_of_day: bool) -> Optional[datetime]:
    """Parse a filter date; a bare date covers the whole day on the inclusive side."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return _naive_utc(value)
    if isinstance(value, date):
        day = value
    else:
        text = str(value).strip()
        if not text:
            return None
        if len(text) == 10:
            day = date.fromisoformat(text)
        else:
            return _naive_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    return datetime.combine(day, time.max if end_of_day else time.min)


class GeoPoint(BaseModel):
    """GeoJSON point; coordinates are [longitude, latitude]."""

    type: Literal["Point"] = "Point"
    coordinates: tuple[float, float]

    @field_validator("coordinates")
    @classmethod
    def _in_range(cls, v: tuple[float, float]) -> tuple[float, float]:
        lng, lat = v
        if not -180 <= lng <= 180:
            raise ValueError("longitude must be between -180 and 180")
        if not -90 <= lat <= 90:
            raise ValueError("latitude must be between -90 and 90")
        return v

    @property
    def longitude(self) -> float:
        return self.coordinates[0]

    @property
    def latitude(self) -> float:
        return self.coordinates[1]


# ---------- Event ----------
class EventCreate(CamelModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=5000)
    date: datetime
    location: GeoPoint
    category: Category
    skill_level: str = Field(min_length=1, max_length=50)
    entry_fee: int = Field(default=0, ge=0)

    @field_validator("date")
    @classmethod
    def _date_utc(cls, v: datetime) -> datetime:
        return _naive_utc(v)


class EventUpdate(CamelModel):
    """Partial update; blank or missing keys leave the stored value alone."""

    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    date: Optional[datetime] = None
    location: Optional[GeoPoint] = None
    category: Optional[Category] = None
    skill_level: Optional[str] = Field(default=None, max_length=50)
    entry_fee: Optional[int] = Field(default=None, ge=0)

    # entryFee is left out: a fee of 0 is a real value
    @field_validator("title", "description", "date", "location", "category", "skill_level", mode="before")
    @classmethod
    def _blank_keeps_existing(cls, v: Any) -> Any:
        return None if v == "" else v

    @field_validator("date")
    @classmethod
    def _date_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return None if v is None else _naive_utc(v)


class EventFilter(CamelModel):
    category: Optional[Category] = None
    skill_level: Optional[str] = None
    max_fee: Optional[int] = Field(default=None, ge=0)
    search: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("*", mode="before")
    @classmethod
    def _blank_is_omitted(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("start_date", mode="before")
    @classmethod
    def _start_bound(cls, v: Any) -> Optional[datetime]:
        return _parse_bound(v, end_of_day=False)

    @field_validator("end_date", mode="before")
    @classmethod
    def _end_bound(cls, v: Any) -> Optional[datetime]:
        return _parse_bound(v, end_of_day=True)


class EventOut(CamelModel):
    id: int
    title: str
    description: str
    date: datetime
    location: GeoPoint
    category: Category
    skill_level: str
    entry_fee: int
    host: UserSummary
    registered_participants: list[int]
    is_open: bool
    created_at: datetime


class EventDetailOut(EventOut):
    host: UserContact


class RegistrationOut(BaseModel):
    message: str
