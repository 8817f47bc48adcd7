"""New-job drafts: a direct request or an open offer, each validated on its own."""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from cleaning_market.models import ServiceRequest

from .clock import format_hhmm, parse_hhmm
from .errors import ValidationError
from .states import RequestStatus, RequestType, ServiceType

NOTE_MAX_LENGTH = 500


def _check_schedule(service: str, day: Optional[date], start_time: str, end_time: str, now: datetime) -> tuple[str, str]:
    """Shared checks for both kinds of draft. Returns normalized (start, end)."""
    if not service or day is None or not start_time or not end_time:
        raise ValidationError("Missing required fields")

    valid_services = {s.value for s in ServiceType}
    if service not in valid_services:
        raise ValidationError(f"Unknown service: {service}")

    start = parse_hhmm(start_time, "Start time")
    end = parse_hhmm(end_time, "End time")
    if end <= start:
        raise ValidationError("End time must be after start time")

    if datetime.combine(day, start) <= now:
        raise ValidationError("Cannot create a request for a time in the past")

    return format_hhmm(start), format_hhmm(end)


def _check_note(note: Optional[str]) -> None:
    if note is not None and len(note) > NOTE_MAX_LENGTH:
        raise ValidationError(f"Note cannot exceed {NOTE_MAX_LENGTH} characters")


@dataclass
class DirectRequestDraft:
    """A client's request addressed to one cleaner."""

    cleaner_id: Optional[int]
    service: str
    date: Optional[date]
    start_time: str
    end_time: str
    note: Optional[str] = None

    def build(self, client_id: int, now: datetime) -> ServiceRequest:
        if not self.cleaner_id:
            raise ValidationError("Cleaner ID is required for specific requests")
        start, end = _check_schedule(self.service, self.date, self.start_time, self.end_time, now)
        _check_note(self.note)

        return ServiceRequest(
            client_id=client_id,
            cleaner_id=self.cleaner_id,
            service=self.service,
            date=self.date,
            start_time=start,
            end_time=end,
            note=self.note,
            request_type=RequestType.SPECIFIC,
            status=RequestStatus.PENDING,
            client_rated=False,
        )


@dataclass
class OfferDraft:
    """A client's open offer any cleaner may apply to."""

    service: str
    date: Optional[date]
    start_time: str
    end_time: str
    budget: Optional[float]
    deadline: Optional[datetime]
    note: Optional[str] = None

    def build(self, client_id: int, now: datetime) -> ServiceRequest:
        start, end = _check_schedule(self.service, self.date, self.start_time, self.end_time, now)
        if self.budget is None or self.deadline is None:
            raise ValidationError("Budget and deadline are required for offers")
        if self.budget < 0:
            raise ValidationError("Budget cannot be negative")
        _check_note(self.note)

        return ServiceRequest(
            client_id=client_id,
            cleaner_id=None,
            service=self.service,
            date=self.date,
            start_time=start,
            end_time=end,
            note=self.note,
            request_type=RequestType.GENERAL,
            status=RequestStatus.OPEN,
            budget=float(self.budget),
            deadline=self.deadline,
            client_rated=False,
        )
