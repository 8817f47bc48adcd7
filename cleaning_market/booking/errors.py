class BookingError(Exception):
    """Base exception for booking errors; carries a kind name and HTTP status."""

    kind = "BookingError"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"message": self.message, "kind": self.kind}


class ValidationError(BookingError):
    kind = "ValidationError"
    status_code = 400


class NotFoundError(BookingError):
    kind = "NotFound"
    status_code = 404


class ForbiddenError(BookingError):
    kind = "Forbidden"
    status_code = 403


class InvalidTransitionError(BookingError):
    kind = "InvalidTransition"
    status_code = 409


class OfferUnavailableError(BookingError):
    kind = "Unavailable"
    status_code = 409

    def __init__(self, message: str = "Offer is no longer available"):
        super().__init__(message)


class OfferExpiredError(BookingError):
    kind = "Expired"
    status_code = 410


class DuplicateApplicationError(BookingError):
    kind = "DuplicateApplication"
    status_code = 409

    def __init__(self, message: str = "You have already applied to this offer"):
        super().__init__(message)
