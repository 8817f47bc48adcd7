from enum import StrEnum


class RequestStatus(StrEnum):
    PENDING = "pending"        # Direct request waiting for the cleaner
    OPEN = "open"              # Offer waiting for applications
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class RequestType(StrEnum):
    SPECIFIC = "specific"
    GENERAL = "general"


class ApplicationStatus(StrEnum):
    PENDING = "pending"
    SELECTED = "selected"
    REJECTED = "rejected"


class ServiceType(StrEnum):
    HOUSE = "house cleaning"
    DEEP = "deep cleaning"
    CARPET = "carpet cleaning"
    WINDOW = "window cleaning"
    OFFICE = "office cleaning"
    MOVE_IN_OUT = "move-in/move-out cleaning"
    POST_CONSTRUCTION = "post-construction cleaning"
    UPHOLSTERY = "upholstery cleaning"


# Statuses a cleaner may set on a request assigned to them
CLEANER_TARGET_STATUSES = frozenset({
    RequestStatus.ACCEPTED.value,
    RequestStatus.DECLINED.value,
    RequestStatus.CANCELLED.value,
    RequestStatus.COMPLETED.value,
})

# Direct requests a cleaner still has to act on
ACTIVE_DIRECT_STATUSES = (RequestStatus.PENDING.value, RequestStatus.ACCEPTED.value)
