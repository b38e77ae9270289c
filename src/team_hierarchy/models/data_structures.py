"""
Core data structures for the Team Hierarchy Engine.

This module defines the typed records that flow between the store, the
materializer, the hierarchy builder and the layout engine. Raw database rows
are mapped onto these dataclasses at the store boundary so the rest of the
package never handles untyped rows.

Classes:
    Team: A persisted team with an optional parent.
    TeamReference: Shallow id/name reference to a team.
    TeamWithRelations: Team with its parent and direct children resolved.
    MaterializedTeam: Derived per-team record of the team tree view.
    TeamTreeStatistics: Aggregate statistics over the team tree view.
    TeamTree: Nested hierarchy node returned by hierarchy queries.
    Position, LayoutNode, LayoutEdge, LayoutResult: Layout engine types.
    TeamPage: One page of a paginated team listing.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


# Descendant-count thresholds for team size buckets
LARGE_TEAM_THRESHOLD: int = 50
MEDIUM_TEAM_THRESHOLD: int = 10


class TeamSizeCategory(str, Enum):
    """Size bucket derived from a team's descendant count."""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"

    @classmethod
    def from_descendant_count(cls, descendant_count: int) -> "TeamSizeCategory":
        """
        Bucket a descendant count.

        Args:
            descendant_count: Number of descendants of the team.

        Returns:
            LARGE above 50 descendants, MEDIUM above 10, SMALL otherwise.
        """
        if descendant_count > LARGE_TEAM_THRESHOLD:
            return cls.LARGE
        if descendant_count > MEDIUM_TEAM_THRESHOLD:
            return cls.MEDIUM
        return cls.SMALL


@dataclass(frozen=True)
class Team:
    """
    A persisted team.

    Attributes:
        id: Unique integer identifier.
        name: Display name. Not guaranteed unique.
        parent_id: Identifier of the parent team, None for roots.
    """

    id: int
    name: str
    parent_id: Optional[int] = None

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


@dataclass(frozen=True)
class TeamReference:
    """Shallow id/name reference used for parent and child links."""

    id: int
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass
class TeamWithRelations:
    """
    Team with its parent and direct children resolved.

    Attributes:
        id: Team identifier.
        name: Team name.
        parent_id: Parent identifier or None.
        parent: Shallow reference to the parent or None.
        children: Shallow references to direct children, ordered by id.
        parent_count: 1 if the team has a parent, else 0.
        child_count: Number of direct children.
    """

    id: int
    name: str
    parent_id: Optional[int]
    parent: Optional[TeamReference]
    children: List[TeamReference] = field(default_factory=list)
    parent_count: int = 0
    child_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "parent_id": self.parent_id,
            "parent": self.parent.to_dict() if self.parent else None,
            "children": [child.to_dict() for child in self.children],
            "parent_count": self.parent_count,
            "child_count": self.child_count,
        }


@dataclass(frozen=True)
class MaterializedTeam:
    """
    Derived record of the team tree view, one per team.

    Attributes:
        id: Team identifier.
        name: Team name.
        parent_id: Parent identifier or None.
        root_id: Identifier of the root of the tree this team belongs to.
        root_name: Name of that root.
        depth: 0 for roots, otherwise parent depth + 1.
        path: Team ids from the root down to this team (self last).
        path_names: Names along ``path`` joined with the path separator.
        descendant_count: Number of teams whose path contains this team,
            excluding the team itself.
        is_root: True when ``parent_id`` is None.
        is_leaf: True when no team has this team as parent.
        size_category: Bucket derived from ``descendant_count``.
    """

    id: int
    name: str
    parent_id: Optional[int]
    root_id: int
    root_name: str
    depth: int
    path: List[int]
    path_names: str
    descendant_count: int
    is_root: bool
    is_leaf: bool
    size_category: TeamSizeCategory

    @property
    def path_length(self) -> int:
        return len(self.path)

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["path"] = list(self.path)
        result["size_category"] = self.size_category.value
        result["path_length"] = self.path_length
        return result


@dataclass(frozen=True)
class TeamTreeStatistics:
    """Aggregate statistics over the team tree view."""

    total_teams: int = 0
    total_root_teams: int = 0
    total_leaf_teams: int = 0
    max_depth: int = 0
    avg_depth: float = 0.0
    largest_team_size: int = 0
    avg_team_size: float = 0.0
    teams_with_10_plus_descendants: int = 0
    teams_with_no_descendants: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TeamTree:
    """
    Nested hierarchy node returned by hierarchy queries.

    Built fresh per query. ``child_count`` always equals ``len(children)``
    and ``parent_count`` is 1 exactly when ``parent`` is set.

    Attributes:
        id: Team identifier.
        name: Team name.
        parent: Shallow reference to the parent or None.
        children: Nested child trees, ordered by id.
        parent_count: 1 if ``parent`` is set, else 0.
        child_count: Number of nested children.
    """

    id: int
    name: str
    parent: Optional[TeamReference] = None
    children: List["TeamTree"] = field(default_factory=list)
    parent_count: int = 0
    child_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the tree to nested dictionaries for serialization.

        Returns:
            Dictionary with id, name, parent, children (recursively),
            parent_count and child_count.
        """
        return {
            "id": self.id,
            "name": self.name,
            "parent": self.parent.to_dict() if self.parent else None,
            "children": [child.to_dict() for child in self.children],
            "parent_count": self.parent_count,
            "child_count": self.child_count,
        }


@dataclass(frozen=True)
class Position:
    """Top-left position of a layout node."""

    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class LayoutNode:
    """
    Node handed to the layout engine.

    Attributes:
        id: Node identifier (string form of the team id).
        label: Text rendered in the node.
        width: Rendered width. None means the configured default width.
        height: Rendered height.
        position: Top-left corner. Zero until the layout assigns it.
        selected: Whether the node is the highlighted team.
    """

    id: str
    label: str = ""
    width: Optional[float] = None
    height: float = 60.0
    position: Position = field(default_factory=Position)
    selected: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "width": self.width,
            "height": self.height,
            "position": {"x": self.position.x, "y": self.position.y},
            "selected": self.selected,
        }


@dataclass(frozen=True)
class LayoutEdge:
    """Parent to child edge between two layout nodes."""

    id: str
    source: str
    target: str
    is_one_to_one: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class LayoutResult:
    """Positioned nodes plus the edges they were laid out with."""

    nodes: List[LayoutNode] = field(default_factory=list)
    edges: List[LayoutEdge] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }


@dataclass
class TeamPage:
    """One page of a paginated team listing."""

    teams: List[TeamWithRelations]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        if self.total <= 0:
            return 1
        return (self.total + self.page_size - 1) // self.page_size

    def to_dict(self) -> Dict[str, Any]:
        return {
            "teams": [team.to_dict() for team in self.teams],
            "total": self.total,
            "page": self.page,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
        }
