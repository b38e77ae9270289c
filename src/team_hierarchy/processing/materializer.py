"""Materializer for the team tree view.

This module derives one MaterializedTeam record per team (root, depth, path,
path names, descendant count, root/leaf flags and size category) and keeps the
``team_tree_view`` cache of the store in sync with the live team forest.

The computation is a pure function over a list of teams. The stateful
``TeamTreeMaterializer`` binds it to an injected store.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Sequence, Tuple

from ..models.data_structures import (
    MaterializedTeam,
    Team,
    TeamSizeCategory,
    TeamTreeStatistics,
)
from ..utils.error_handlers import (
    CacheUnavailableError,
    CycleDetectedError,
    wrap_with_error_handling,
)


logger = logging.getLogger(__name__)


DEFAULT_PATH_SEPARATOR: str = " > "


@dataclass
class _PartialRecord:
    """Path data assigned during expansion, before descendant counting."""

    team: Team
    root: Team
    depth: int
    path: List[int]
    path_names: str


def _group_children(
    teams: Sequence[Team], team_ids: Dict[int, Team]
) -> Dict[int, List[Team]]:
    """Map parent id to its existing children, ordered by id."""
    children: Dict[int, List[Team]] = {}
    for team in sorted(teams, key=lambda t: t.id):
        if team.parent_id is not None and team.parent_id in team_ids:
            children.setdefault(team.parent_id, []).append(team)
    return children


def _find_starts(teams: Sequence[Team], team_ids: Dict[int, Team]) -> List[Team]:
    """Teams that begin a tree: real roots plus teams with a dangling parent."""
    starts = []
    for team in sorted(teams, key=lambda t: t.id):
        if team.parent_id is None:
            starts.append(team)
        elif team.parent_id not in team_ids:
            logger.warning(
                f"Team {team.id} references missing parent {team.parent_id}; "
                f"treating it as the top of its own tree"
            )
            starts.append(team)
    return starts


def compute_team_tree_records(
    teams: Sequence[Team], path_separator: str = DEFAULT_PATH_SEPARATOR
) -> List[MaterializedTeam]:
    """Compute the materialized record of every team.

    Roots are expanded breadth first. Each child extends its parent's path
    and path names and sits one level deeper. Descendant counts come from
    path containment afterwards.

    Args:
        teams: The complete team set.
        path_separator: Separator placed between names in ``path_names``.

    Returns:
        One MaterializedTeam per input team, ordered by id.

    Raises:
        ValueError: If team ids are not unique.
        CycleDetectedError: If some teams cannot be reached from a root, which
            only happens when their parent links form a cycle.
    """
    team_ids: Dict[int, Team] = {}
    for team in teams:
        if team.id in team_ids:
            raise ValueError(f"Duplicate team id: {team.id}")
        team_ids[team.id] = team

    children = _group_children(teams, team_ids)
    partials: Dict[int, _PartialRecord] = {}
    queue: Deque[Tuple[Team, _PartialRecord]] = deque()

    for start in _find_starts(teams, team_ids):
        record = _PartialRecord(
            team=start,
            root=start,
            depth=0,
            path=[start.id],
            path_names=start.name,
        )
        partials[start.id] = record
        queue.append((start, record))

    # Every team is enqueued at most once, so more steps than teams means a loop
    steps = 0
    max_steps = len(team_ids)
    while queue:
        steps += 1
        if steps > max_steps:
            raise CycleDetectedError(
                f"Expansion exceeded {max_steps} steps",
                team_ids=[team.id for team, _ in queue],
            )

        team, record = queue.popleft()
        for child in children.get(team.id, []):
            if child.id in partials:
                raise CycleDetectedError(
                    f"Team {child.id} reached twice during expansion",
                    team_ids=[child.id, team.id],
                )
            child_record = _PartialRecord(
                team=child,
                root=record.root,
                depth=record.depth + 1,
                path=record.path + [child.id],
                path_names=f"{record.path_names}{path_separator}{child.name}",
            )
            partials[child.id] = child_record
            queue.append((child, child_record))

    unreached = [team_id for team_id in team_ids if team_id not in partials]
    if unreached:
        raise CycleDetectedError(
            f"Parent cycle detected: {len(unreached)} teams are unreachable "
            f"from any root",
            team_ids=unreached,
        )

    descendant_counts: Dict[int, int] = {team_id: 0 for team_id in team_ids}
    for partial in partials.values():
        for ancestor_id in partial.path[:-1]:
            descendant_counts[ancestor_id] += 1

    records = []
    for team_id in sorted(partials):
        partial = partials[team_id]
        count = descendant_counts[team_id]
        records.append(
            MaterializedTeam(
                id=team_id,
                name=partial.team.name,
                parent_id=partial.team.parent_id,
                root_id=partial.root.id,
                root_name=partial.root.name,
                depth=partial.depth,
                path=list(partial.path),
                path_names=partial.path_names,
                descendant_count=count,
                is_root=partial.team.parent_id is None,
                is_leaf=team_id not in children,
                size_category=TeamSizeCategory.from_descendant_count(count),
            )
        )

    logger.debug(f"Computed {len(records)} team tree records")
    return records


def summarize_records(records: Sequence[MaterializedTeam]) -> TeamTreeStatistics:
    """Aggregate statistics over materialized records.

    Mirrors the statistics query of the store so callers can summarize
    records that were computed but not cached.
    """
    if not records:
        return TeamTreeStatistics()

    total = len(records)
    counts = [record.descendant_count for record in records]
    return TeamTreeStatistics(
        total_teams=total,
        total_root_teams=sum(1 for record in records if record.is_root),
        total_leaf_teams=sum(1 for record in records if record.is_leaf),
        max_depth=max(record.depth for record in records),
        avg_depth=sum(record.depth for record in records) / total,
        largest_team_size=max(counts),
        avg_team_size=sum(counts) / total,
        teams_with_10_plus_descendants=sum(1 for count in counts if count >= 10),
        teams_with_no_descendants=sum(1 for count in counts if count == 0),
    )


class TeamTreeMaterializer:
    """Keeps the store's team tree view in sync with the team forest.

    The store is injected; any object offering ``get_all_teams`` and the
    ``*_team_tree_view`` methods of DatabaseManager works.

    Example:
        >>> materializer = TeamTreeMaterializer(db_manager)
        >>> materializer.update()
        >>> db_manager.get_team_tree_from_view(limit=10)
    """

    def __init__(self, store, path_separator: str = DEFAULT_PATH_SEPARATOR) -> None:
        """Initializes the materializer.

        Args:
            store: Persistence collaborator (normally a DatabaseManager).
            path_separator: Separator between names in ``path_names``.

        Raises:
            ValueError: If path_separator is empty.
        """
        if not path_separator:
            raise ValueError("path_separator cannot be empty")
        self.store = store
        self.path_separator = path_separator

    def compute(self) -> List[MaterializedTeam]:
        """Compute records from the current team set without writing them."""
        teams = self.store.get_all_teams()
        return compute_team_tree_records(teams, self.path_separator)

    @wrap_with_error_handling
    def refresh(self) -> List[MaterializedTeam]:
        """Recompute every record and replace the cache.

        The cache is created when it does not exist yet. When computation
        fails nothing is written, so the previous cache stays readable.

        Returns:
            The records now stored in the cache.

        Raises:
            CycleDetectedError: If the team forest contains a parent cycle.
            DatabaseError: If the store operation fails.
        """
        records = self.compute()
        if self.store.team_tree_view_exists():
            try:
                self.store.refresh_team_tree_view(records)
            except CacheUnavailableError:
                # Dropped concurrently between the check and the refresh
                self.store.create_team_tree_view(records)
        else:
            self.store.create_team_tree_view(records)

        logger.info(f"Team tree view refreshed with {len(records)} records")
        return records

    @wrap_with_error_handling
    def create(self) -> List[MaterializedTeam]:
        """Create the cache if absent and populate it.

        Returns:
            The records now stored in the cache.

        Raises:
            CycleDetectedError: If the team forest contains a parent cycle.
            DatabaseError: If the store operation fails.
        """
        records = self.compute()
        self.store.create_team_tree_view(records)
        logger.info(f"Team tree view created with {len(records)} records")
        return records

    def exists(self) -> bool:
        return self.store.team_tree_view_exists()

    def drop(self) -> None:
        """Remove the cache. No error if it does not exist."""
        self.store.drop_team_tree_view()

    def initialize(self) -> List[MaterializedTeam]:
        return self.create()

    def update(self) -> List[MaterializedTeam]:
        """Refresh the cache when it exists, otherwise create it."""
        if self.exists():
            return self.refresh()
        return self.create()
