"""Booking lifecycle, offer matching and auto-completion."""
