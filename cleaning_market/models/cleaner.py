"""Cleaner account model."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Float, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class Cleaner(Base):
    __tablename__ = "cleaners"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), default="")
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    phone_number: Mapped[str] = mapped_column(String(50), default="")
    hourly_price: Mapped[float] = mapped_column(Float, default=0.0)
    services: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    requests: Mapped[list["ServiceRequest"]] = relationship(back_populates="cleaner")
    applications: Mapped[list["OfferApplication"]] = relationship(back_populates="cleaner")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "name": self.name,
            "email": self.email,
            "phone_number": self.phone_number,
            "hourly_price": self.hourly_price,
            "services": list(self.services or []),
            "role": "cleaner",
        }
