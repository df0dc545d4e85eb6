"""Appointment booking backend for the studio website."""

__version__ = "0.1.0"
