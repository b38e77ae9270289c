"""
Integration tests for the command-line interface.
"""

import json
import sys

import pytest

from team_hierarchy import __version__
from team_hierarchy.cli.main import main
from team_hierarchy.database.database_manager import DatabaseManager


def run_cli(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["team-hierarchy", *args])
    return main()


@pytest.fixture
def cli(monkeypatch, test_config_file):
    """Run the CLI against the temporary configuration."""

    def _run(*args):
        return run_cli(monkeypatch, "--config", str(test_config_file), *args)

    return _run


@pytest.fixture
def seeded_cli(cli, capsys):
    assert cli("seed", "--count", "15", "--seed", "5") == 0
    capsys.readouterr()
    return cli


def open_db(test_config_dict):
    return DatabaseManager(test_config_dict["database"]["path"])


@pytest.mark.integration
class TestGeneralOptions:
    """Version, help and configuration validation."""

    def test_version(self, monkeypatch, capsys):
        assert run_cli(monkeypatch, "--version") == 0
        assert __version__ in capsys.readouterr().out

    def test_no_command(self, monkeypatch):
        assert run_cli(monkeypatch) == 1

    def test_validate_config(self, cli, capsys):
        assert cli("validate-config") == 0
        assert "Configuration valid" in capsys.readouterr().out

    def test_validate_invalid_config(self, monkeypatch, temp_dir, capsys):
        config_path = temp_dir / "bad.yaml"
        config_path.write_text(
            "database: {path: teams.db}\n"
            "hierarchy: {on_missing_view: ignore}\n"
            "layout: {}\n"
            "logging: {level: INFO, log_dir: logs}\n"
        )

        exit_code = run_cli(
            monkeypatch, "--config", str(config_path), "validate-config"
        )

        assert exit_code == 1
        assert "on_missing_view" in capsys.readouterr().out

    def test_missing_config_file(self, monkeypatch, temp_dir):
        missing = str(temp_dir / "absent.yaml")

        assert run_cli(monkeypatch, "--config", missing, "init-db") == 1


@pytest.mark.integration
class TestDatabaseCommands:
    """init-db, seed, writes and view maintenance."""

    def test_init_db(self, cli, test_config_dict, capsys):
        assert cli("init-db") == 0

        assert "Database ready" in capsys.readouterr().out
        with open_db(test_config_dict) as db:
            assert db.get_team_count() == 0

    def test_seed_builds_view(self, cli, test_config_dict, capsys):
        assert cli("seed", "--count", "12", "--seed", "2") == 0

        assert "Created 12 teams" in capsys.readouterr().out
        with open_db(test_config_dict) as db:
            assert db.get_team_count() == 12
            assert len(db.get_team_tree_from_view()) == 12

    def test_seed_defaults_from_config(self, cli, test_config_dict):
        assert cli("seed", "--skip-view") == 0

        with open_db(test_config_dict) as db:
            assert db.get_team_count() == 25
            assert not db.team_tree_view_exists()

    def test_add_team_and_set_parent(self, cli, test_config_dict):
        assert cli("add-team", "Engineering") == 0
        assert cli("add-team", "Platform", "--parent-id", "1") == 0
        assert cli("add-team", "Orphan", "--parent-id", "99") == 1

        # Engineering under Platform would close a cycle
        assert cli("set-parent", "1", "--parent-id", "2") == 1
        assert cli("set-parent", "2") == 0

        with open_db(test_config_dict) as db:
            assert db.get_team_by_id(2).parent_id is None

    def test_refresh_and_drop_view(self, seeded_cli, test_config_dict, capsys):
        assert seeded_cli("drop-view") == 0
        with open_db(test_config_dict) as db:
            assert not db.team_tree_view_exists()

        assert seeded_cli("refresh-view") == 0
        assert "15 records" in capsys.readouterr().out


@pytest.mark.integration
class TestQueryCommands:
    """hierarchy, layout, stats and list."""

    def test_hierarchy_to_stdout(self, seeded_cli, capsys):
        assert seeded_cli("hierarchy", "--format", "compact") == 0

        document = json.loads(capsys.readouterr().out)
        assert document["kind"] == "hierarchy"

        def count(nodes):
            return sum(1 + count(node["children"]) for node in nodes)

        assert count(document["data"]) == 15

    def test_scoped_hierarchy_to_file(self, seeded_cli, test_config_dict, temp_dir):
        with open_db(test_config_dict) as db:
            name = db.get_team_by_id(1).name
        output = temp_dir / "out" / "scoped.json"

        assert seeded_cli("hierarchy", "--team", name, "--output", str(output)) == 0

        document = json.loads(output.read_text(encoding="utf-8"))
        assert document["data"][0]["id"] == 1

    def test_hierarchy_without_cache(self, seeded_cli, capsys):
        assert seeded_cli("hierarchy", "--no-cache") == 0
        assert json.loads(capsys.readouterr().out)["data"]

    def test_layout(self, seeded_cli, capsys):
        assert seeded_cli("layout") == 0

        document = json.loads(capsys.readouterr().out)
        assert len(document["data"]["nodes"]) == 15

    def test_stats(self, seeded_cli, capsys):
        assert seeded_cli("stats", "--top", "3") == 0

        out = capsys.readouterr().out
        assert "TEAM TREE STATISTICS" in out
        assert "Total Teams: 15" in out
        assert "Largest 3 teams" in out
        assert "Cached Records: 15" in out
        assert "Database Size:" in out

    def test_list(self, cli, capsys):
        cli("add-team", "Data Platform")
        cli("add-team", "Mobile")
        capsys.readouterr()

        assert cli("list", "--name", "data") == 0

        out = capsys.readouterr().out
        assert "Found 1 team(s)" in out
        assert "Data Platform" in out
        assert "Mobile" not in out

    def test_list_invalid_page(self, cli):
        assert cli("list", "--page", "0") == 1
