"""
Team service for the Team Hierarchy Engine.

Coordinates the store, the materializer, the hierarchy builder and the layout
engine. Hierarchy queries run on the fast path (materialized records) or the
slow path (live team rows); both produce identical trees.

When the fast path is requested before the team tree view exists the
``on_missing_view`` policy decides what happens:

- ``"rebuild"``: build the view, then answer from it.
- ``"fallback"``: answer from the slow path and leave the store untouched.

Typical usage example:
    service = TeamService.from_config(config, db_manager)
    trees = service.get_scoped_hierarchy("Platform Team")
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Set

from ..database.database_manager import DatabaseManager
from ..database.query_filters import TeamQueryFilters
from ..models.data_structures import (
    LayoutResult,
    MaterializedTeam,
    TeamPage,
    TeamTree,
    TeamTreeStatistics,
    TeamWithRelations,
)
from ..processing.hierarchy_builder import (
    build_full_hierarchy,
    build_full_hierarchy_from_records,
    build_scoped_hierarchy,
    build_scoped_hierarchy_from_records,
    find_team_by_name,
    flatten_tree,
)
from ..processing.materializer import (
    DEFAULT_PATH_SEPARATOR,
    TeamTreeMaterializer,
    compute_team_tree_records,
    summarize_records,
)
from ..processing.tree_layout import LayoutConfig, layout_hierarchy
from ..utils.config_loader import VALID_MISSING_VIEW_POLICIES, SystemConfig
from ..utils.error_handlers import CacheUnavailableError, ValidationError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HierarchySettings:
    """Settings for hierarchy queries.

    Attributes:
        use_materialized_view: Default for ``use_cache`` on hierarchy queries.
        on_missing_view: ``"rebuild"`` or ``"fallback"``.
        path_separator: Separator between names in materialized path names.
    """

    use_materialized_view: bool = True
    on_missing_view: str = "rebuild"
    path_separator: str = DEFAULT_PATH_SEPARATOR

    def __post_init__(self) -> None:
        if self.on_missing_view not in VALID_MISSING_VIEW_POLICIES:
            raise ValueError(
                f"on_missing_view must be one of {list(VALID_MISSING_VIEW_POLICIES)}, "
                f"got {self.on_missing_view!r}"
            )
        if not self.path_separator:
            raise ValueError("path_separator cannot be empty")

    @classmethod
    def from_dict(cls, values: Optional[Mapping[str, Any]]) -> "HierarchySettings":
        values = values or {}
        return cls(
            use_materialized_view=bool(values.get("use_materialized_view", True)),
            on_missing_view=values.get("on_missing_view", "rebuild"),
            path_separator=values.get("path_separator", DEFAULT_PATH_SEPARATOR),
        )


class TeamService:
    """
    Hierarchy queries and team writes over a DatabaseManager.

    Attributes:
        db: Team store.
        settings: Hierarchy query settings.
        materializer: Maintains the team tree view.
        layout_config: Sizes used by ``get_hierarchy_layout``.
    """

    def __init__(
        self,
        db: DatabaseManager,
        settings: Optional[HierarchySettings] = None,
        materializer: Optional[TeamTreeMaterializer] = None,
        layout_config: Optional[LayoutConfig] = None,
    ) -> None:
        """
        Initialize the service with dependency injection.

        Args:
            db: Team store.
            settings: Optional hierarchy settings (defaults when None).
            materializer: Optional materializer (created over ``db`` if None).
            layout_config: Optional layout sizes (defaults when None).
        """
        self.db = db
        self.settings = settings or HierarchySettings()
        self.materializer = materializer or TeamTreeMaterializer(
            db, path_separator=self.settings.path_separator
        )
        self.layout_config = layout_config or LayoutConfig()

    @classmethod
    def from_config(cls, config: SystemConfig, db: DatabaseManager) -> "TeamService":
        """Build a service from the ``hierarchy`` and ``layout`` sections."""
        return cls(
            db,
            settings=HierarchySettings.from_dict(config.hierarchy),
            layout_config=LayoutConfig.from_dict(config.layout),
        )

    # ------------------------------------------------------------------
    # Cache access
    # ------------------------------------------------------------------

    def _resolve_use_cache(self, use_cache: Optional[bool]) -> bool:
        if use_cache is None:
            return self.settings.use_materialized_view
        return use_cache

    def _read_cached_records(self) -> Optional[List[MaterializedTeam]]:
        """
        Read the team tree view, applying the missing-view policy.

        Returns:
            Cached records, or None when the caller should use the slow path.

        Raises:
            CycleDetectedError: If a rebuild meets a parent cycle.
        """
        try:
            return self.db.get_team_tree_from_view()
        except CacheUnavailableError:
            if self.settings.on_missing_view == "fallback":
                logger.warning("Team tree view missing; answering from live teams")
                return None

        logger.warning("Team tree view missing; rebuilding it")
        self.materializer.update()
        try:
            return self.db.get_team_tree_from_view()
        except CacheUnavailableError:
            logger.warning("Team tree view dropped during rebuild; using live teams")
            return None

    # ------------------------------------------------------------------
    # Hierarchy queries
    # ------------------------------------------------------------------

    def get_full_hierarchy(self, use_cache: Optional[bool] = None) -> List[TeamTree]:
        """
        Return every tree of the forest.

        Args:
            use_cache: Use the team tree view. Defaults to the
                ``use_materialized_view`` setting.

        Returns:
            One TeamTree per root, ordered by id.

        Raises:
            CycleDetectedError: If the team forest contains a parent cycle.
        """
        if self._resolve_use_cache(use_cache):
            records = self._read_cached_records()
            if records is not None:
                return build_full_hierarchy_from_records(records)
        return build_full_hierarchy(self.db.get_all_teams())

    def get_scoped_hierarchy(
        self, name: str, use_cache: Optional[bool] = None
    ) -> List[TeamTree]:
        """
        Return the slice around the named team.

        The slice holds the team, its ancestors and its descendants. A blank
        or unknown name gives an empty list.

        Args:
            name: Team name. The lowest id wins when names repeat.
            use_cache: Use the team tree view. Defaults to the
                ``use_materialized_view`` setting.

        Raises:
            CycleDetectedError: If a walk meets a parent cycle.
        """
        if not name or not name.strip():
            return []

        if self._resolve_use_cache(use_cache):
            records = self._read_cached_records()
            if records is not None:
                return build_scoped_hierarchy_from_records(records, name)
        return build_scoped_hierarchy(self.db.get_all_teams(), name)

    def get_hierarchy_layout(self, name: Optional[str] = None) -> LayoutResult:
        """
        Position the full forest, or the slice around ``name``.

        The named team is marked as selected.
        """
        if name:
            trees = self.get_scoped_hierarchy(name)
            target = find_team_by_name(flatten_tree(trees), name)
            highlighted_id = target.id if target is not None else None
        else:
            trees = self.get_full_hierarchy()
            highlighted_id = None
        return layout_hierarchy(trees, highlighted_id, self.layout_config)

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def get_team_count(self) -> int:
        return self.db.get_team_count()

    def get_storage_stats(self) -> Dict[str, Any]:
        """Team count, cache state and database file size."""
        return self.db.get_database_stats()

    def get_teams_with_relations(
        self, name: Optional[str] = None
    ) -> List[TeamWithRelations]:
        return self.db.get_teams_with_relations(name)

    def get_teams_paginated(self, filters: TeamQueryFilters) -> TeamPage:
        """
        One page of teams ordered by name, with the total match count.

        Args:
            filters: Name filter and pagination values.
        """
        teams = self.db.query_teams(filters)
        total = self.db.query_teams_count(filters)
        return TeamPage(
            teams=teams, total=total, page=filters.page, page_size=filters.page_size
        )

    def get_team_tree(self, limit: Optional[int] = None) -> List[MaterializedTeam]:
        """
        Materialized records ordered by descendant count (desc), then name.

        Args:
            limit: Optional maximum number of records.
        """
        if limit is not None and limit < 0:
            raise ValueError("limit must be non-negative")

        try:
            return self.db.get_team_tree_from_view(limit)
        except CacheUnavailableError:
            if self.settings.on_missing_view == "rebuild":
                logger.warning("Team tree view missing; rebuilding it")
                self.materializer.update()
                return self.db.get_team_tree_from_view(limit)

        logger.warning("Team tree view missing; computing records from live teams")
        records = sorted(
            compute_team_tree_records(
                self.db.get_all_teams(), self.settings.path_separator
            ),
            key=lambda record: (-record.descendant_count, record.name, record.id),
        )
        return records if limit is None else records[:limit]

    def get_team_tree_statistics(self) -> TeamTreeStatistics:
        """Aggregate statistics of the team forest."""
        try:
            return self.db.get_team_tree_statistics()
        except CacheUnavailableError:
            if self.settings.on_missing_view == "rebuild":
                logger.warning("Team tree view missing; rebuilding it")
                self.materializer.update()
                return self.db.get_team_tree_statistics()

        logger.warning("Team tree view missing; computing statistics from live teams")
        return summarize_records(
            compute_team_tree_records(
                self.db.get_all_teams(), self.settings.path_separator
            )
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_team(self, name: str, parent_id: Optional[int] = None) -> int:
        """
        Create a team under an existing parent (or as a root).

        The team tree view is not refreshed; call
        ``update_materialized_view`` afterwards.

        Raises:
            ValidationError: If the name is blank or the parent is unknown.
        """
        if not name or not name.strip():
            raise ValidationError("Team name cannot be empty", field="name")
        if parent_id is not None and self.db.get_team_by_id(parent_id) is None:
            raise ValidationError(
                f"Parent team does not exist: {parent_id}", field="parent_id"
            )
        return self.db.create_team(name.strip(), parent_id)

    def set_team_parent(self, team_id: int, parent_id: Optional[int]) -> None:
        """
        Move a team under a new parent, or make it a root.

        Raises:
            ValidationError: If either team is unknown or the move would put
                the team below itself.
        """
        teams = {team.id: team for team in self.db.get_all_teams()}
        if team_id not in teams:
            raise ValidationError(
                f"Team does not exist: {team_id}", team_id=team_id, field="team_id"
            )

        if parent_id is not None:
            if parent_id not in teams:
                raise ValidationError(
                    f"Parent team does not exist: {parent_id}",
                    team_id=team_id,
                    field="parent_id",
                )
            if self._is_ancestor_or_self(team_id, parent_id, teams):
                raise ValidationError(
                    f"Setting parent of team {team_id} to {parent_id} "
                    f"would create a cycle",
                    team_id=team_id,
                    field="parent_id",
                )

        self.db.update_team_parent(team_id, parent_id)
        logger.info(f"Team {team_id} moved under {parent_id}")

    @staticmethod
    def _is_ancestor_or_self(
        candidate_id: int, team_id: int, teams: Dict[int, Any]
    ) -> bool:
        """Whether ``candidate_id`` is ``team_id`` or one of its ancestors."""
        visited: Set[int] = set()
        current: Optional[int] = team_id
        while current is not None and current in teams:
            if current == candidate_id:
                return True
            if current in visited:
                # Existing cycle above team_id; any new link through it loops
                return True
            visited.add(current)
            current = teams[current].parent_id
        return False

    # ------------------------------------------------------------------
    # Materialized view management
    # ------------------------------------------------------------------

    def initialize_materialized_view(self) -> List[MaterializedTeam]:
        return self.materializer.initialize()

    def update_materialized_view(self) -> List[MaterializedTeam]:
        """Refresh the team tree view, creating it when absent."""
        return self.materializer.update()

    def drop_materialized_view(self) -> None:
        self.materializer.drop()
