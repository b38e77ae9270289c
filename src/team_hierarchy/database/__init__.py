"""Database layer for the team hierarchy engine."""

from .database_manager import DatabaseManager
from .query_filters import TeamQueryFilters

__all__ = ["DatabaseManager", "TeamQueryFilters"]
