"""Service request model: direct bookings and open offers."""

import datetime as dt
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cleaning_market.booking.clock import combine, parse_hhmm
from cleaning_market.booking.states import RequestStatus, RequestType

from .base import Base


class ServiceRequest(Base):
    __tablename__ = "service_requests"
    __table_args__ = (
        Index("ix_requests_client_status", "client_id", "status"),
        Index("ix_requests_cleaner_status", "cleaner_id", "status"),
        Index("ix_requests_type_status", "request_type", "status"),
        Index("ix_requests_status_date", "status", "date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    client_id: Mapped[int] = mapped_column(Integer, ForeignKey("clients.id"), nullable=False)
    cleaner_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("cleaners.id"), nullable=True)

    service: Mapped[str] = mapped_column(String(50), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)  # HH:MM
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)  # HH:MM
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(String(20), default=RequestStatus.PENDING, nullable=False)
    request_type: Mapped[str] = mapped_column(String(20), default=RequestType.SPECIFIC, nullable=False)

    # Offers only; kept as-is once an offer is converted by selection
    budget: Mapped[float | None] = mapped_column(Float, nullable=True)
    deadline: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    accepted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    review: Mapped[str | None] = mapped_column(Text, nullable=True)
    client_rated: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    client: Mapped["Client"] = relationship(back_populates="requests")
    cleaner: Mapped[Optional["Cleaner"]] = relationship(back_populates="requests")
    applications: Mapped[list["OfferApplication"]] = relationship(back_populates="offer")

    @property
    def start_at(self) -> datetime:
        return combine(self.date, self.start_time)

    @property
    def end_at(self) -> datetime:
        return combine(self.date, self.end_time)

    @property
    def is_offer(self) -> bool:
        return self.request_type == RequestType.GENERAL

    def duration_hours(self) -> float:
        """Length of the job in decimal hours."""
        start = parse_hhmm(self.start_time)
        end = parse_hhmm(self.end_time)
        return ((end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)) / 60

    def is_past(self, now: datetime) -> bool:
        return self.end_at < now

    def should_auto_complete(self, now: datetime) -> bool:
        return self.status == RequestStatus.ACCEPTED and self.end_at < now

    def calculate_total_cost(self) -> float:
        """Duration times the assigned cleaner's hourly price (0 when unassigned)."""
        if self.cleaner is None:
            return 0.0
        return round(self.duration_hours() * (self.cleaner.hourly_price or 0.0), 2)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "cleaner_id": self.cleaner_id,
            "service": self.service,
            "date": self.date.isoformat(),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "note": self.note,
            "status": self.status,
            "request_type": self.request_type,
            "budget": self.budget,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "accepted_at": self.accepted_at.isoformat() if self.accepted_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "rating": self.rating,
            "review": self.review,
            "client_rated": self.client_rated,
            "total_cost": self.calculate_total_cost(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
