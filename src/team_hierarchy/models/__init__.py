"""Data structures for the team hierarchy engine."""

from .data_structures import (
    LayoutEdge,
    LayoutNode,
    LayoutResult,
    MaterializedTeam,
    Position,
    Team,
    TeamPage,
    TeamReference,
    TeamSizeCategory,
    TeamTree,
    TeamTreeStatistics,
    TeamWithRelations,
)

__all__ = [
    "LayoutEdge",
    "LayoutNode",
    "LayoutResult",
    "MaterializedTeam",
    "Position",
    "Team",
    "TeamPage",
    "TeamReference",
    "TeamSizeCategory",
    "TeamTree",
    "TeamTreeStatistics",
    "TeamWithRelations",
]
