"""
Team Hierarchy Engine

Materialization, hierarchy queries and tree layout for a forest of teams.
"""

__version__ = "1.0.0"
__author__ = "Team Hierarchy Team"

# Core exports
from .database import DatabaseManager
from .models import TeamTree
from .service import TeamService

__all__ = [
    "DatabaseManager",
    "TeamTree",
    "TeamService",
    "__version__",
]
