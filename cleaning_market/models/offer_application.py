"""Offer application model: one cleaner's bid on one open offer."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cleaning_market.booking.states import ApplicationStatus

from .base import Base


class OfferApplication(Base):
    __tablename__ = "offer_applications"
    __table_args__ = (
        UniqueConstraint("offer_id", "cleaner_id", name="uq_offer_cleaner"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Plain reference; converting or cancelling the offer never deletes applications
    offer_id: Mapped[int] = mapped_column(Integer, ForeignKey("service_requests.id"), nullable=False, index=True)
    cleaner_id: Mapped[int] = mapped_column(Integer, ForeignKey("cleaners.id"), nullable=False, index=True)

    status: Mapped[str] = mapped_column(String(20), default=ApplicationStatus.PENDING, nullable=False)
    applied_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    selected_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    offer: Mapped["ServiceRequest"] = relationship(back_populates="applications")
    cleaner: Mapped["Cleaner"] = relationship(back_populates="applications")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "offer_id": self.offer_id,
            "cleaner_id": self.cleaner_id,
            "status": self.status,
            "applied_at": self.applied_at.isoformat() if self.applied_at else None,
            "selected_at": self.selected_at.isoformat() if self.selected_at else None,
        }
