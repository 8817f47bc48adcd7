"""Cleaning marketplace: direct bookings, open offers and their lifecycle."""

__version__ = "0.1.0"
