from datetime import datetime

from pydantic import Field, field_validator

from sportsmeet.schemas.base import CamelModel
from sportsmeet.schemas.users import UserSummary


class MessageCreate(CamelModel):
    body: str = Field(min_length=1, max_length=2000)

    @field_validator("body")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message body cannot be blank")
        return v


class MessageOut(CamelModel):
    id: int
    event_id: int
    sender: UserSummary
    body: str
    created_at: datetime
