"""Storage modules for fraudintake."""

from .database import Database

__all__ = ["Database"]
