"""ORM models for the cleaning marketplace."""

from .base import Base, init_db, make_session_factory, normalize_database_url
from .cleaner import Cleaner
from .client import Client
from .offer_application import OfferApplication
from .service_request import ServiceRequest

__all__ = [
    "Base",
    "init_db",
    "make_session_factory",
    "normalize_database_url",
    "Client",
    "Cleaner",
    "ServiceRequest",
    "OfferApplication",
]
