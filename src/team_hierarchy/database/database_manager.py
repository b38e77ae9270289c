"""
Database manager for the Team Hierarchy Engine.

This module provides the persistence layer for the team forest and for the
``team_tree_view`` cache that holds one materialized record per team.

The DatabaseManager uses SQLite with Write-Ahead Logging (WAL) mode for improved
concurrency. Thread safety is ensured via thread-local connections. Every raw
row is mapped onto a dataclass from ``models.data_structures`` before it leaves
this module.

Classes:
    DatabaseManager: Team store and tree view cache operations.

Typical usage example:
    with DatabaseManager(db_path="./data/teams.db") as db_manager:
        root_id = db_manager.create_team("Engineering")
        db_manager.create_team("Platform", parent_id=root_id)
"""

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..models.data_structures import (
    MaterializedTeam,
    Team,
    TeamReference,
    TeamSizeCategory,
    TeamTreeStatistics,
    TeamWithRelations,
)
from ..utils.error_handlers import CacheUnavailableError, DatabaseError
from .query_filters import TeamQueryFilters


logger = logging.getLogger(__name__)


# Constants
DEFAULT_BATCH_SIZE: int = 5000
DEFAULT_CONNECTION_TIMEOUT: float = 30.0
TEAM_TREE_VIEW: str = "team_tree_view"


class DatabaseManager:
    """
    Manages all database operations for the Team Hierarchy Engine.

    The ``teams`` table is the source of truth. The ``team_tree_view`` table is
    a derived cache that is created, replaced and dropped wholesale; it is
    written only through the ``*_team_tree_view`` methods.

    Thread Safety:
        Each thread maintains its own SQLite connection. Replacing the cache
        runs as a single transaction, so concurrent readers observe either the
        previous or the new set of records.

    Context Manager:
        DatabaseManager implements the context manager protocol:

            with DatabaseManager(db_path) as db:
                db.create_team("Engineering")

    Attributes:
        db_path: Path to the SQLite database file.
        schema_path: Path to the SQL schema definition file.

    Raises:
        DatabaseError: For all database operation failures.
    """

    # SQL Query Constants
    _SQL_SELECT_TEAMS = "SELECT id, name, parent_id FROM teams"

    _SQL_INSERT_TEAM = "INSERT INTO teams (name, parent_id) VALUES (?, ?)"

    _SQL_CREATE_VIEW = f"""
        CREATE TABLE IF NOT EXISTS {TEAM_TREE_VIEW} (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            parent_id INTEGER,
            root_id INTEGER NOT NULL,
            root_name TEXT NOT NULL,
            depth INTEGER NOT NULL,
            path TEXT NOT NULL,
            path_names TEXT NOT NULL,
            path_length INTEGER NOT NULL,
            descendant_count INTEGER NOT NULL,
            is_root INTEGER NOT NULL,
            is_leaf INTEGER NOT NULL,
            size_category TEXT NOT NULL
        )
    """

    _SQL_INSERT_VIEW_RECORD = f"""
        INSERT INTO {TEAM_TREE_VIEW} (
            id, name, parent_id, root_id, root_name, depth, path,
            path_names, path_length, descendant_count, is_root, is_leaf,
            size_category
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    """

    _SQL_SELECT_VIEW = f"""
        SELECT id, name, parent_id, root_id, root_name, depth, path,
            path_names, descendant_count, is_root, is_leaf, size_category
        FROM {TEAM_TREE_VIEW}
        ORDER BY descendant_count DESC, name ASC, id ASC
    """

    _SQL_VIEW_STATISTICS = f"""
        SELECT
            COUNT(*) AS total_teams,
            COALESCE(SUM(is_root), 0) AS total_root_teams,
            COALESCE(SUM(is_leaf), 0) AS total_leaf_teams,
            COALESCE(MAX(depth), 0) AS max_depth,
            COALESCE(AVG(depth), 0.0) AS avg_depth,
            COALESCE(MAX(descendant_count), 0) AS largest_team_size,
            COALESCE(AVG(descendant_count), 0.0) AS avg_team_size,
            COALESCE(SUM(CASE WHEN descendant_count >= 10 THEN 1 ELSE 0 END), 0)
                AS teams_with_10_plus_descendants,
            COALESCE(SUM(CASE WHEN descendant_count = 0 THEN 1 ELSE 0 END), 0)
                AS teams_with_no_descendants
        FROM {TEAM_TREE_VIEW}
    """

    def __init__(self, db_path: str, schema_path: Optional[str] = None) -> None:
        """
        Initialize database manager and create the schema.

        Args:
            db_path: Path to SQLite database file. Parent directories will be
                created if they don't exist.
            schema_path: Optional path to schema SQL file. If not provided,
                defaults to schema.sql in the same directory as this module.

        Raises:
            DatabaseError: If connection or schema creation fails.
        """
        self.db_path: str = db_path
        self.schema_path: str = schema_path or str(Path(__file__).parent / "schema.sql")

        # Thread-local storage for connections
        self._local: threading.local = threading.local()
        self._lock: threading.Lock = threading.Lock()

        db_dir = Path(db_path).parent
        db_dir.mkdir(parents=True, exist_ok=True)

        self.initialize_database()

    def __enter__(self) -> "DatabaseManager":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - closes connection for current thread."""
        self.close()

    def _get_connection(self) -> sqlite3.Connection:
        """
        Get or create thread-local database connection.

        Returns:
            Thread-specific SQLite connection.

        Raises:
            DatabaseError: If connection cannot be established.
        """
        if not hasattr(self._local, "connection") or self._local.connection is None:
            try:
                self._local.connection = sqlite3.connect(
                    self.db_path,
                    timeout=DEFAULT_CONNECTION_TIMEOUT,
                    check_same_thread=True,
                )
                self._local.connection.execute("PRAGMA foreign_keys = ON")

                cursor = self._local.connection.execute("PRAGMA journal_mode = WAL")
                mode = cursor.fetchone()[0]
                if mode.upper() != "WAL":
                    logger.warning(f"Failed to enable WAL mode, using {mode} instead")

                self._local.connection.execute("PRAGMA synchronous = NORMAL")
                self._local.connection.row_factory = sqlite3.Row

            except sqlite3.Error as e:
                raise DatabaseError(
                    message=f"Failed to connect to database: {e}",
                    operation="connect",
                ) from e
        return self._local.connection

    @contextmanager
    def _transaction(self, immediate: bool = False):
        """
        Context manager for database transactions.

        Args:
            immediate: Open the transaction with ``BEGIN IMMEDIATE`` so that
                DDL statements run inside it as well.

        Yields:
            sqlite3.Connection: Database connection with active transaction.
        """
        conn = self._get_connection()
        if immediate and not conn.in_transaction:
            conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def _batch_execute(
        self,
        cursor: sqlite3.Cursor,
        query: str,
        data: List[Tuple[Any, ...]],
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        """
        Execute batch insert in chunks to prevent memory issues.

        Args:
            cursor: Database cursor.
            query: SQL INSERT query.
            data: List of tuples containing row data.
            batch_size: Number of rows per batch (default: 5000).
        """
        for i in range(0, len(data), batch_size):
            batch = data[i : i + batch_size]
            cursor.executemany(query, batch)

    def initialize_database(self) -> None:
        """
        Create tables and indexes from the schema file.

        Idempotent: the schema uses CREATE ... IF NOT EXISTS.

        Raises:
            DatabaseError: If the schema file is missing or execution fails.
        """
        try:
            with open(self.schema_path, "r", encoding="utf-8") as f:
                schema_sql = f.read()

            with self._lock:
                conn = self._get_connection()
                conn.executescript(schema_sql)
                conn.commit()
                logger.info(f"Database initialized: {self.db_path}")

        except FileNotFoundError as e:
            raise DatabaseError(
                message=f"Schema file not found: {self.schema_path}",
                operation="initialize",
                original_error=e,
            ) from e
        except sqlite3.Error as e:
            raise DatabaseError(
                message=f"Failed to initialize database: {e}",
                operation="initialize",
            ) from e

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_team(row: sqlite3.Row) -> Team:
        return Team(id=row["id"], name=row["name"], parent_id=row["parent_id"])

    @staticmethod
    def _row_to_materialized(row: sqlite3.Row) -> MaterializedTeam:
        return MaterializedTeam(
            id=row["id"],
            name=row["name"],
            parent_id=row["parent_id"],
            root_id=row["root_id"],
            root_name=row["root_name"],
            depth=row["depth"],
            path=json.loads(row["path"]),
            path_names=row["path_names"],
            descendant_count=row["descendant_count"],
            is_root=bool(row["is_root"]),
            is_leaf=bool(row["is_leaf"]),
            size_category=TeamSizeCategory(row["size_category"]),
        )

    @staticmethod
    def _record_to_row(record: MaterializedTeam) -> Tuple[Any, ...]:
        return (
            record.id,
            record.name,
            record.parent_id,
            record.root_id,
            record.root_name,
            record.depth,
            json.dumps(list(record.path)),
            record.path_names,
            record.path_length,
            record.descendant_count,
            1 if record.is_root else 0,
            1 if record.is_leaf else 0,
            record.size_category.value,
        )

    def _attach_relations(
        self, cursor: sqlite3.Cursor, teams: Sequence[Team]
    ) -> List[TeamWithRelations]:
        """
        Resolve parent and direct children for the given teams.

        Children are ordered by id. A parent id that references no existing
        team resolves to ``parent=None``.
        """
        if not teams:
            return []

        cursor.execute("SELECT id, name, parent_id FROM teams ORDER BY id")
        all_rows = cursor.fetchall()
        names = {row["id"]: row["name"] for row in all_rows}
        children: Dict[int, List[TeamReference]] = {}
        for row in all_rows:
            if row["parent_id"] is not None:
                children.setdefault(row["parent_id"], []).append(
                    TeamReference(id=row["id"], name=row["name"])
                )

        result = []
        for team in teams:
            parent = None
            if team.parent_id is not None and team.parent_id in names:
                parent = TeamReference(id=team.parent_id, name=names[team.parent_id])
            team_children = children.get(team.id, [])
            result.append(
                TeamWithRelations(
                    id=team.id,
                    name=team.name,
                    parent_id=team.parent_id,
                    parent=parent,
                    children=list(team_children),
                    parent_count=1 if parent else 0,
                    child_count=len(team_children),
                )
            )
        return result

    # ------------------------------------------------------------------
    # Team reads
    # ------------------------------------------------------------------

    def get_all_teams(self) -> List[Team]:
        """
        Fetch every team ordered by id.

        Returns:
            List of Team records.

        Raises:
            DatabaseError: If query execution fails.
        """
        try:
            cursor = self._get_connection().cursor()
            cursor.execute(f"{self._SQL_SELECT_TEAMS} ORDER BY id")
            return [self._row_to_team(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise DatabaseError(
                message=f"Failed to fetch teams: {e}",
                operation="get_all_teams",
            ) from e

    def get_teams_with_relations(
        self, name: Optional[str] = None
    ) -> List[TeamWithRelations]:
        """
        Fetch teams with parent and children populated.

        Args:
            name: Optional exact name filter. None or empty returns all teams.

        Returns:
            List of TeamWithRelations ordered by id.

        Raises:
            DatabaseError: If query execution fails.
        """
        try:
            cursor = self._get_connection().cursor()
            if name:
                cursor.execute(
                    f"{self._SQL_SELECT_TEAMS} WHERE name = ? ORDER BY id", (name,)
                )
            else:
                cursor.execute(f"{self._SQL_SELECT_TEAMS} ORDER BY id")
            teams = [self._row_to_team(row) for row in cursor.fetchall()]
            return self._attach_relations(cursor, teams)
        except sqlite3.Error as e:
            raise DatabaseError(
                message=f"Failed to fetch teams with relations: {e}",
                operation="get_teams_with_relations",
            ) from e

    def get_team_by_name(self, name: str) -> Optional[Team]:
        """
        Fetch the first team with the given name.

        Names are not unique; the team with the lowest id wins.

        Args:
            name: Exact team name.

        Returns:
            Team or None if no team has that name.

        Raises:
            DatabaseError: If query execution fails.
        """
        try:
            cursor = self._get_connection().cursor()
            cursor.execute(
                f"{self._SQL_SELECT_TEAMS} WHERE name = ? ORDER BY id LIMIT 1",
                (name,),
            )
            row = cursor.fetchone()
            if row:
                return self._row_to_team(row)
            return None
        except sqlite3.Error as e:
            raise DatabaseError(
                message=f"Failed to get team by name: {e}",
                operation="get_team_by_name",
            ) from e

    def get_team_by_id(self, team_id: int) -> Optional[Team]:
        """
        Fetch a team by identifier.

        Returns:
            Team or None if not found.

        Raises:
            DatabaseError: If query execution fails.
        """
        try:
            cursor = self._get_connection().cursor()
            cursor.execute(f"{self._SQL_SELECT_TEAMS} WHERE id = ?", (team_id,))
            row = cursor.fetchone()
            if row:
                return self._row_to_team(row)
            return None
        except sqlite3.Error as e:
            raise DatabaseError(
                message=f"Failed to get team: {e}",
                team_id=team_id,
                operation="get_team_by_id",
            ) from e

    def get_team_count(self) -> int:
        try:
            cursor = self._get_connection().cursor()
            cursor.execute("SELECT COUNT(*) FROM teams")
            return cursor.fetchone()[0]
        except sqlite3.Error as e:
            raise DatabaseError(
                message=f"Failed to count teams: {e}",
                operation="get_team_count",
            ) from e

    def query_teams(self, filters: TeamQueryFilters) -> List[TeamWithRelations]:
        """
        Query one page of teams ordered by name.

        Args:
            filters: TeamQueryFilters with an optional case-insensitive name
                substring and pagination values.

        Returns:
            TeamWithRelations records for the requested page.

        Raises:
            DatabaseError: If query execution fails.
        """
        try:
            cursor = self._get_connection().cursor()

            query = f"{self._SQL_SELECT_TEAMS} WHERE 1=1"
            params: List[Any] = []

            pattern = filters.like_pattern()
            if pattern is not None:
                query += " AND name LIKE ? ESCAPE '\\'"
                params.append(pattern)

            query += " ORDER BY name ASC, id ASC LIMIT ? OFFSET ?"
            params.extend([filters.limit, filters.offset])

            cursor.execute(query, params)
            teams = [self._row_to_team(row) for row in cursor.fetchall()]
            return self._attach_relations(cursor, teams)

        except sqlite3.Error as e:
            raise DatabaseError(
                message=f"Failed to query teams: {e}",
                operation="query_teams",
            ) from e

    def query_teams_count(self, filters: TeamQueryFilters) -> int:
        """
        Count teams matching the filter's name condition (for pagination).

        Raises:
            DatabaseError: If query execution fails.
        """
        try:
            cursor = self._get_connection().cursor()

            query = "SELECT COUNT(*) FROM teams WHERE 1=1"
            params: List[Any] = []

            pattern = filters.like_pattern()
            if pattern is not None:
                query += " AND name LIKE ? ESCAPE '\\'"
                params.append(pattern)

            cursor.execute(query, params)
            return cursor.fetchone()[0]

        except sqlite3.Error as e:
            raise DatabaseError(
                message=f"Failed to count teams: {e}",
                operation="query_teams_count",
            ) from e

    # ------------------------------------------------------------------
    # Team writes
    # ------------------------------------------------------------------

    def create_team(self, name: str, parent_id: Optional[int] = None) -> int:
        """
        Insert a team.

        Acyclicity is not checked here; the parent must be an existing team.

        Args:
            name: Team name. Must not be empty.
            parent_id: Optional parent team identifier.

        Returns:
            Identifier of the new team.

        Raises:
            ValueError: If name is empty.
            DatabaseError: If insertion fails (including an unknown parent).
        """
        if not name or not name.strip():
            raise ValueError("name cannot be empty")

        try:
            with self._transaction() as conn:
                cursor = conn.cursor()
                cursor.execute(self._SQL_INSERT_TEAM, (name, parent_id))
                team_id = cursor.lastrowid
                logger.debug(f"Created team {team_id} ({name!r}, parent={parent_id})")
                return team_id
        except sqlite3.IntegrityError as e:
            raise DatabaseError(
                message=f"Parent team does not exist: {parent_id}",
                operation="create_team",
                original_error=e,
            ) from e
        except sqlite3.Error as e:
            raise DatabaseError(
                message=f"Failed to create team: {e}",
                operation="create_team",
            ) from e

    def create_teams(self, rows: Iterable[Tuple[str, Optional[int]]]) -> List[int]:
        """
        Insert several teams in one transaction.

        Rows are inserted in order so a row may reference a team created
        earlier in the same call.

        Args:
            rows: ``(name, parent_id)`` pairs.

        Returns:
            Identifiers of the new teams in input order.

        Raises:
            DatabaseError: If any insertion fails; nothing is written then.
        """
        try:
            with self._transaction() as conn:
                cursor = conn.cursor()
                ids = []
                for name, parent_id in rows:
                    cursor.execute(self._SQL_INSERT_TEAM, (name, parent_id))
                    ids.append(cursor.lastrowid)
                logger.info(f"Created {len(ids)} teams")
                return ids
        except sqlite3.Error as e:
            raise DatabaseError(
                message=f"Failed to create teams: {e}",
                operation="create_teams",
            ) from e

    def update_team_parent(self, team_id: int, parent_id: Optional[int]) -> None:
        """
        Set or clear a team's parent.

        Acyclicity is not checked here.

        Raises:
            DatabaseError: If the team does not exist or the update fails.
        """
        try:
            with self._transaction() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "UPDATE teams SET parent_id = ? WHERE id = ?",
                    (parent_id, team_id),
                )
                if cursor.rowcount == 0:
                    raise DatabaseError(
                        message=f"Team not found: {team_id}",
                        team_id=team_id,
                        operation="update_team_parent",
                    )
                logger.debug(f"Set parent of team {team_id} to {parent_id}")
        except sqlite3.Error as e:
            raise DatabaseError(
                message=f"Failed to update team parent: {e}",
                team_id=team_id,
                operation="update_team_parent",
            ) from e

    def update_team_parents(
        self, assignments: Sequence[Tuple[int, Optional[int]]]
    ) -> None:
        """
        Apply several ``(team_id, parent_id)`` assignments in one transaction.

        Acyclicity is not checked here.

        Raises:
            DatabaseError: If any update fails; nothing is written then.
        """
        try:
            with self._transaction() as conn:
                cursor = conn.cursor()
                self._batch_execute(
                    cursor,
                    "UPDATE teams SET parent_id = ? WHERE id = ?",
                    [(parent_id, team_id) for team_id, parent_id in assignments],
                )
                logger.debug(f"Updated parents of {len(assignments)} teams")
        except sqlite3.Error as e:
            raise DatabaseError(
                message=f"Failed to update team parents: {e}",
                operation="update_team_parents",
            ) from e

    def delete_all_teams(self) -> int:
        """
        Delete every team.

        Returns:
            Number of deleted teams.

        Raises:
            DatabaseError: If deletion fails.
        """
        try:
            with self._transaction() as conn:
                cursor = conn.cursor()
                # Detach first so ON DELETE SET NULL has nothing to cascade
                cursor.execute("UPDATE teams SET parent_id = NULL")
                cursor.execute("DELETE FROM teams")
                deleted = cursor.rowcount
                logger.info(f"Deleted {deleted} teams")
                return deleted
        except sqlite3.Error as e:
            raise DatabaseError(
                message=f"Failed to delete teams: {e}",
                operation="delete_all_teams",
            ) from e

    # ------------------------------------------------------------------
    # Team tree view (materialized cache)
    # ------------------------------------------------------------------

    def _view_exists(self, cursor: sqlite3.Cursor) -> bool:
        cursor.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
            (TEAM_TREE_VIEW,),
        )
        return cursor.fetchone() is not None

    def team_tree_view_exists(self) -> bool:
        """
        Check whether the team tree view is present.

        Raises:
            DatabaseError: If the check fails.
        """
        try:
            return self._view_exists(self._get_connection().cursor())
        except sqlite3.Error as e:
            raise DatabaseError(
                message=f"Failed to check team tree view: {e}",
                operation="team_tree_view_exists",
            ) from e

    def _replace_view_rows(
        self, cursor: sqlite3.Cursor, records: Sequence[MaterializedTeam]
    ) -> None:
        cursor.execute(f"DELETE FROM {TEAM_TREE_VIEW}")
        self._batch_execute(
            cursor,
            self._SQL_INSERT_VIEW_RECORD,
            [self._record_to_row(record) for record in records],
        )

    def create_team_tree_view(self, records: Sequence[MaterializedTeam]) -> None:
        """
        Create the team tree view if absent and populate it with ``records``.

        Calling this on an existing view replaces its rows, so repeated calls
        converge to the same state as ``refresh_team_tree_view``.

        Raises:
            DatabaseError: If creation or population fails.
        """
        try:
            with self._transaction(immediate=True) as conn:
                cursor = conn.cursor()
                cursor.execute(self._SQL_CREATE_VIEW)
                self._replace_view_rows(cursor, records)
            logger.info(f"Created team tree view with {len(records)} records")
        except sqlite3.Error as e:
            raise DatabaseError(
                message=f"Failed to create team tree view: {e}",
                operation="create_team_tree_view",
            ) from e

    def refresh_team_tree_view(self, records: Sequence[MaterializedTeam]) -> None:
        """
        Replace every row of the existing team tree view.

        Args:
            records: Complete set of materialized records.

        Raises:
            CacheUnavailableError: If the view does not exist.
            DatabaseError: If the replacement fails; the previous rows remain.
        """
        try:
            with self._transaction(immediate=True) as conn:
                cursor = conn.cursor()
                if not self._view_exists(cursor):
                    raise CacheUnavailableError(
                        "Cannot refresh team tree view: view does not exist"
                    )
                self._replace_view_rows(cursor, records)
            logger.info(f"Refreshed team tree view with {len(records)} records")
        except sqlite3.Error as e:
            raise DatabaseError(
                message=f"Failed to refresh team tree view: {e}",
                operation="refresh_team_tree_view",
            ) from e

    def drop_team_tree_view(self) -> None:
        """
        Drop the team tree view. No error if it does not exist.

        Raises:
            DatabaseError: If the drop fails.
        """
        try:
            with self._transaction() as conn:
                conn.execute(f"DROP TABLE IF EXISTS {TEAM_TREE_VIEW}")
            logger.info("Dropped team tree view")
        except sqlite3.Error as e:
            raise DatabaseError(
                message=f"Failed to drop team tree view: {e}",
                operation="drop_team_tree_view",
            ) from e

    def get_team_tree_from_view(
        self, limit: Optional[int] = None
    ) -> List[MaterializedTeam]:
        """
        Read materialized records ordered by descendant count, then name.

        Args:
            limit: Optional maximum number of records.

        Returns:
            List of MaterializedTeam records.

        Raises:
            ValueError: If limit is negative.
            CacheUnavailableError: If the view does not exist.
            DatabaseError: If query execution fails.
        """
        if limit is not None and limit < 0:
            raise ValueError("limit must be non-negative")

        try:
            cursor = self._get_connection().cursor()
            if not self._view_exists(cursor):
                raise CacheUnavailableError()

            if limit is None:
                cursor.execute(self._SQL_SELECT_VIEW)
            else:
                cursor.execute(f"{self._SQL_SELECT_VIEW} LIMIT ?", (limit,))
            return [self._row_to_materialized(row) for row in cursor.fetchall()]

        except sqlite3.Error as e:
            raise DatabaseError(
                message=f"Failed to read team tree view: {e}",
                operation="get_team_tree_from_view",
            ) from e

    def get_team_tree_statistics(self) -> TeamTreeStatistics:
        """
        Aggregate statistics over the team tree view.

        Returns:
            TeamTreeStatistics. All fields are zero for an empty view.

        Raises:
            CacheUnavailableError: If the view does not exist.
            DatabaseError: If query execution fails.
        """
        try:
            cursor = self._get_connection().cursor()
            if not self._view_exists(cursor):
                raise CacheUnavailableError()

            cursor.execute(self._SQL_VIEW_STATISTICS)
            row = cursor.fetchone()
            return TeamTreeStatistics(
                total_teams=row["total_teams"],
                total_root_teams=row["total_root_teams"],
                total_leaf_teams=row["total_leaf_teams"],
                max_depth=row["max_depth"],
                avg_depth=float(row["avg_depth"]),
                largest_team_size=row["largest_team_size"],
                avg_team_size=float(row["avg_team_size"]),
                teams_with_10_plus_descendants=row["teams_with_10_plus_descendants"],
                teams_with_no_descendants=row["teams_with_no_descendants"],
            )

        except sqlite3.Error as e:
            raise DatabaseError(
                message=f"Failed to compute team tree statistics: {e}",
                operation="get_team_tree_statistics",
            ) from e

    def get_database_stats(self) -> Dict[str, Any]:
        """
        Get basic database statistics.

        Returns:
            Dictionary with team count, whether the tree view exists, the
            number of cached records and the database file size.

        Raises:
            DatabaseError: If query execution fails.
        """
        try:
            cursor = self._get_connection().cursor()
            stats: Dict[str, Any] = {}

            cursor.execute("SELECT COUNT(*) FROM teams")
            stats["total_teams"] = cursor.fetchone()[0]

            view_exists = self._view_exists(cursor)
            stats["team_tree_view_exists"] = view_exists
            if view_exists:
                cursor.execute(f"SELECT COUNT(*) FROM {TEAM_TREE_VIEW}")
                stats["cached_records"] = cursor.fetchone()[0]
            else:
                stats["cached_records"] = 0

            db_size_bytes = Path(self.db_path).stat().st_size
            stats["database_size_mb"] = round(db_size_bytes / (1024 * 1024), 2)

            return stats

        except sqlite3.Error as e:
            raise DatabaseError(
                message=f"Failed to get database stats: {e}",
                operation="get_database_stats",
            ) from e

    def close(self) -> None:
        """
        Close the database connection for the current thread.

        A new connection is opened automatically on the next operation.
        """
        if hasattr(self._local, "connection") and self._local.connection:
            self._local.connection.close()
            self._local.connection = None
            logger.debug("Database connection closed for current thread")
