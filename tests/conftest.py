"""
Pytest configuration and fixtures.
"""

import logging
import random
from pathlib import Path
from typing import Dict, List

import pytest
import yaml

from team_hierarchy.database.database_manager import DatabaseManager
from team_hierarchy.models.data_structures import Team
from team_hierarchy.utils.config_loader import ENV_DB_PATH, ENV_LOG_LEVEL


FOREST_SIZE = 60


def build_forest_teams(count: int = FOREST_SIZE, seed: int = 42) -> List[Team]:
    """Random acyclic forest: every parent has a lower id than its child."""
    rng = random.Random(seed)
    teams = [Team(id=1, name="Team 1")]
    for team_id in range(2, count + 1):
        parent_id = rng.randrange(1, team_id) if rng.random() < 0.7 else None
        teams.append(Team(id=team_id, name=f"Team {team_id}", parent_id=parent_id))
    return teams


@pytest.fixture(scope="function")
def temp_dir(tmp_path):
    """Create temporary directory for tests."""
    return tmp_path


@pytest.fixture(scope="function")
def test_db(temp_dir):
    """Create test database."""
    db_path = Path(temp_dir) / "test.db"
    db = DatabaseManager(str(db_path))
    yield db
    db.close()


@pytest.fixture(scope="function")
def small_forest_teams() -> List[Team]:
    """Root 1 with children 2 and 3; team 4 under 2."""
    return [
        Team(id=1, name="Engineering"),
        Team(id=2, name="Platform", parent_id=1),
        Team(id=3, name="Product", parent_id=1),
        Team(id=4, name="Infrastructure", parent_id=2),
    ]


@pytest.fixture(scope="function")
def forest_teams() -> List[Team]:
    """Larger generated forest with several roots."""
    return build_forest_teams()


@pytest.fixture(scope="function")
def small_forest_db(test_db) -> Dict[str, int]:
    """Store holding the small two-level forest. Returns team ids by name."""
    engineering = test_db.create_team("Engineering")
    platform = test_db.create_team("Platform", engineering)
    product = test_db.create_team("Product", engineering)
    infrastructure = test_db.create_team("Infrastructure", platform)
    return {
        "Engineering": engineering,
        "Platform": platform,
        "Product": product,
        "Infrastructure": infrastructure,
    }


@pytest.fixture(scope="function")
def forest_db(test_db) -> DatabaseManager:
    """Store holding the generated forest, inserted parents first."""
    test_db.create_teams(
        (team.name, team.parent_id) for team in build_forest_teams()
    )
    return test_db


@pytest.fixture(scope="function")
def make_cycle():
    """Return a helper that closes a parent cycle through the raw store."""

    def _make_cycle(db: DatabaseManager, team_id: int, parent_id: int) -> None:
        db.update_team_parent(team_id, parent_id)

    return _make_cycle


@pytest.fixture(scope="function")
def test_config_dict(temp_dir) -> Dict:
    """Complete configuration dictionary using absolute temporary paths."""
    return {
        "database": {"path": str(Path(temp_dir) / "data" / "teams.db")},
        "hierarchy": {
            "use_materialized_view": True,
            "on_missing_view": "rebuild",
            "path_separator": " > ",
        },
        "layout": {
            "node_width": 180,
            "node_height": 60,
            "level_height": 120,
            "node_spacing": 15,
            "min_width": 180,
            "padding": 2,
            "approx_char_width": 10,
        },
        "logging": {"level": "INFO", "log_dir": str(Path(temp_dir) / "logs")},
        "seed": {"team_count": 25, "parent_probability": 0.5, "random_seed": 7},
    }


@pytest.fixture(scope="function")
def test_config_file(temp_dir, test_config_dict, monkeypatch) -> Path:
    """Write the test configuration to a YAML file."""
    monkeypatch.delenv(ENV_DB_PATH, raising=False)
    monkeypatch.delenv(ENV_LOG_LEVEL, raising=False)

    config_path = Path(temp_dir) / "system_config.yaml"
    with open(config_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(test_config_dict, f)
    return config_path


@pytest.fixture(autouse=True)
def remove_file_log_handlers():
    """Detach file handlers the CLI adds to the root logger."""
    yield
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if isinstance(handler, logging.FileHandler):
            root_logger.removeHandler(handler)
            handler.close()
