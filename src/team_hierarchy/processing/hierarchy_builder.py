"""Hierarchy builder module for the Team Hierarchy Engine.

This module turns flat team data into nested TeamTree structures. Two query
shapes are supported: the full forest and the slice around one named team
(the team, its ancestors and its descendants).

Each shape has two builders with identical results. The slow path works on
live Team rows and walks parent links with visited sets. The fast path works
on MaterializedTeam records and answers membership questions from the
precomputed ``path``.

Flat data is handled as an arena: a dict keyed by team id, with parent and
children expressed as ids. Nesting happens once, in ``_assemble_forest``.
"""

import logging
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from ..models.data_structures import MaterializedTeam, Team, TeamReference, TeamTree
from ..utils.error_handlers import CycleDetectedError


logger = logging.getLogger(__name__)


TeamLike = Union[Team, MaterializedTeam]

# (id, name, parent_id)
_ArenaEntry = Tuple[int, str, Optional[int]]


def _to_arena(teams: Iterable[TeamLike]) -> Dict[int, _ArenaEntry]:
    return {team.id: (team.id, team.name, team.parent_id) for team in teams}


def _assemble_forest(
    arena: Dict[int, _ArenaEntry], relevant_ids: Set[int]
) -> List[TeamTree]:
    """Nest the relevant teams under their parents.

    Top-level elements are relevant teams whose parent is not relevant.
    Roots and children are ordered by id.

    Args:
        arena: Flat team data keyed by id.
        relevant_ids: Ids to include.

    Returns:
        Top-level TeamTree nodes.
    """
    nodes: Dict[int, TeamTree] = {}
    for team_id in sorted(relevant_ids):
        _, name, _ = arena[team_id]
        nodes[team_id] = TeamTree(id=team_id, name=name)

    roots: List[TeamTree] = []
    for team_id in sorted(relevant_ids):
        _, _, parent_id = arena[team_id]
        node = nodes[team_id]
        if parent_id is not None and parent_id in nodes:
            parent = nodes[parent_id]
            node.parent = TeamReference(id=parent.id, name=parent.name)
            node.parent_count = 1
            parent.children.append(node)
        else:
            roots.append(node)

    for node in nodes.values():
        node.child_count = len(node.children)

    return roots


def _reachable_ids(roots: Sequence[TeamTree]) -> Set[int]:
    reachable: Set[int] = set()
    stack = list(roots)
    while stack:
        node = stack.pop()
        reachable.add(node.id)
        stack.extend(node.children)
    return reachable


def _children_index(arena: Dict[int, _ArenaEntry]) -> Dict[int, List[int]]:
    children: Dict[int, List[int]] = {}
    for team_id in sorted(arena):
        _, _, parent_id = arena[team_id]
        if parent_id is not None and parent_id in arena:
            children.setdefault(parent_id, []).append(team_id)
    return children


def _collect_ancestor_ids(arena: Dict[int, _ArenaEntry], team_id: int) -> List[int]:
    """Walk parent links upwards from ``team_id`` (excluded).

    Stops at a root or at a parent id that is not in the arena.

    Raises:
        CycleDetectedError: If the walk meets a team twice.
    """
    ancestors: List[int] = []
    visited: Set[int] = {team_id}
    _, _, parent_id = arena[team_id]
    while parent_id is not None and parent_id in arena:
        if parent_id in visited:
            raise CycleDetectedError(
                f"Parent cycle detected above team {team_id}",
                team_ids=visited,
            )
        visited.add(parent_id)
        ancestors.append(parent_id)
        _, _, parent_id = arena[parent_id]
    return ancestors


def _collect_descendant_ids(
    children: Dict[int, List[int]], team_id: int
) -> List[int]:
    """Breadth-first closure of "is a child of" below ``team_id`` (excluded).

    Raises:
        CycleDetectedError: If the walk meets a team twice.
    """
    descendants: List[int] = []
    visited: Set[int] = {team_id}
    queue: Deque[int] = deque([team_id])
    while queue:
        current = queue.popleft()
        for child_id in children.get(current, []):
            if child_id in visited:
                raise CycleDetectedError(
                    f"Parent cycle detected below team {team_id}",
                    team_ids=[child_id, current],
                )
            visited.add(child_id)
            descendants.append(child_id)
            queue.append(child_id)
    return descendants


def find_team_by_name(teams: Iterable[TeamLike], name: str) -> Optional[TeamLike]:
    """Return the team with the lowest id among those named ``name``.

    Returns:
        The matching team, or None for a blank or unknown name.
    """
    if not name or not name.strip():
        return None
    matches = [team for team in teams if team.name == name]
    if not matches:
        return None
    if len(matches) > 1:
        logger.debug(
            f"{len(matches)} teams share the name {name!r}; using the lowest id"
        )
    return min(matches, key=lambda team: team.id)


def build_full_hierarchy(teams: Sequence[Team]) -> List[TeamTree]:
    """Build the full forest from live team rows.

    A team whose parent id references no team in the set becomes a top-level
    element.

    Args:
        teams: Every team.

    Returns:
        One TeamTree per top-level team, ordered by id.

    Raises:
        CycleDetectedError: If some teams are not reachable from any top-level
            team.
    """
    arena = _to_arena(teams)
    roots = _assemble_forest(arena, set(arena))

    reachable = _reachable_ids(roots)
    if len(reachable) != len(arena):
        raise CycleDetectedError(
            f"Parent cycle detected: {len(arena) - len(reachable)} teams are "
            f"unreachable from any root",
            team_ids=set(arena) - reachable,
        )

    logger.debug(
        f"Built full hierarchy with {len(roots)} roots from {len(arena)} teams"
    )
    return roots


def build_full_hierarchy_from_records(
    records: Sequence[MaterializedTeam],
) -> List[TeamTree]:
    """Build the full forest from materialized records."""
    arena = _to_arena(records)
    return _assemble_forest(arena, set(arena))


def build_scoped_hierarchy(teams: Sequence[Team], name: str) -> List[TeamTree]:
    """Build the slice around the named team from live team rows.

    The slice holds the target, every ancestor up to its root and every
    descendant. An empty or unknown name yields an empty list.

    Args:
        teams: Every team.
        name: Name of the target team. The lowest id wins on duplicates.

    Returns:
        Top-level TeamTree nodes of the slice.

    Raises:
        CycleDetectedError: If an ancestor or descendant walk meets a cycle.
    """
    target = find_team_by_name(teams, name)
    if target is None:
        return []

    arena = _to_arena(teams)
    relevant_ids = {target.id}
    relevant_ids.update(_collect_ancestor_ids(arena, target.id))
    relevant_ids.update(_collect_descendant_ids(_children_index(arena), target.id))

    logger.debug(f"Scoped hierarchy for {name!r} holds {len(relevant_ids)} teams")
    return _assemble_forest(arena, relevant_ids)


def build_scoped_hierarchy_from_records(
    records: Sequence[MaterializedTeam], name: str
) -> List[TeamTree]:
    """Build the slice around the named team from materialized records.

    Ancestors are the ids on the target's path; descendants are the records
    whose path contains the target id.
    """
    target = find_team_by_name(records, name)
    if target is None:
        return []

    arena = _to_arena(records)
    relevant_ids = set(target.path)
    for record in records:
        if target.id in record.path:
            relevant_ids.add(record.id)

    # Ancestors that are absent from the record set are not part of the slice
    relevant_ids &= set(arena)
    return _assemble_forest(arena, relevant_ids)


# Tree traversal utilities


def flatten_tree(trees: Sequence[TeamTree]) -> List[TeamTree]:
    """Flatten nested trees in depth-first pre-order."""
    flat: List[TeamTree] = []
    stack = list(reversed(trees))
    while stack:
        node = stack.pop()
        flat.append(node)
        stack.extend(reversed(node.children))
    return flat


def build_team_map(teams: Iterable[TeamTree]) -> Dict[int, TeamTree]:
    return {team.id: team for team in teams}


def collect_parents(
    team: TeamTree, acc: Set[int], team_map: Dict[int, TeamTree]
) -> None:
    """Add the ids of every ancestor of ``team`` to ``acc``.

    Ids already in ``acc`` are not walked again.
    """
    current = team
    while current.parent is not None and current.parent.id not in acc:
        acc.add(current.parent.id)
        parent = team_map.get(current.parent.id)
        if parent is None:
            break
        current = parent


def collect_children(
    team: TeamTree, acc: Set[int], team_map: Dict[int, TeamTree]
) -> None:
    """Add the ids of every descendant of ``team`` to ``acc``."""
    stack = [team]
    while stack:
        current = stack.pop()
        for child in current.children:
            if child.id in acc:
                continue
            acc.add(child.id)
            stack.append(team_map.get(child.id, child))


def get_expanded_team_ids(
    teams: Sequence[TeamTree], highlighted_ids: Optional[Iterable[int]]
) -> List[int]:
    """Ids that stay visible around the highlighted teams.

    Without highlighted ids every team is visible. Otherwise each highlighted
    team is shown with its ancestors and descendants.

    Args:
        teams: Flat list of tree nodes (see ``flatten_tree``).
        highlighted_ids: Ids of the highlighted teams.

    Returns:
        Every id in input order when nothing is highlighted, otherwise the
        visible ids ordered by id.
    """
    highlighted = list(highlighted_ids or [])
    if not highlighted:
        return [team.id for team in teams]

    team_map = build_team_map(teams)
    visible: Set[int] = set()
    for team_id in highlighted:
        visible.add(team_id)
        team = team_map.get(team_id)
        if team is not None:
            collect_parents(team, visible, team_map)
            collect_children(team, visible, team_map)

    return sorted(visible)
