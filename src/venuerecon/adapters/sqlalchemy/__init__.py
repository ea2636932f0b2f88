"""SQLAlchemy adapter package for the venue store."""

from __future__ import annotations

from .database import VenueDatabase
from .mappings import WRITABLE_COLUMNS, mapper_registry, venue_table
from .repositories import SqlAlchemyVenueStore

__all__ = [
    "WRITABLE_COLUMNS",
    "SqlAlchemyVenueStore",
    "VenueDatabase",
    "mapper_registry",
    "venue_table",
]
