"""Team service: hierarchy queries, listings and team writes."""

from .team_service import HierarchySettings, TeamService

__all__ = ["HierarchySettings", "TeamService"]
