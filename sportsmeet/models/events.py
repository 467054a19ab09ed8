import enum
from datetime import datetime, timezone

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sportsmeet.database.db import Base
from sportsmeet.models.users import User


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every datetime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Category(str, enum.Enum):
    CRICKET = "Cricket"
    FOOTBALL = "Football"
    BADMINTON = "Badminton"
    RUNNING = "Running"
    BASKETBALL = "Basketball"
    TENNIS = "Tennis"
    KABADDI = "Kabaddi"
    OTHER = "Other"


class Event(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    skill_level: Mapped[str] = mapped_column(String(50), nullable=False)
    entry_fee: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    host_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    host: Mapped[User] = relationship(lazy="joined")
    registrations: Mapped[list["Registration"]] = relationship(
        back_populates="event",
        order_by="Registration.id",
        cascade="all, delete-orphan",
    )

    @property
    def location(self) -> dict:
        return {"type": "Point", "coordinates": [self.longitude, self.latitude]}

    @property
    def registered_participants(self) -> list[int]:
        return [r.user_id for r in self.registrations]

    @property
    def is_open(self) -> bool:
        return self.date > utcnow()


class Registration(Base):
    __tablename__ = "registrations"
    __table_args__ = (UniqueConstraint("event_id", "user_id", name="uq_registration_event_user"),)

    # Autoincrement id records registration order
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    event: Mapped["Event"] = relationship(back_populates="registrations")
    user: Mapped[User] = relationship()
