"""
Integration tests for TeamService over a SQLite store.
"""

import pytest

from team_hierarchy.database.query_filters import TeamQueryFilters
from team_hierarchy.processing.hierarchy_builder import flatten_tree
from team_hierarchy.service.team_service import HierarchySettings, TeamService
from team_hierarchy.utils.config_loader import Config
from team_hierarchy.utils.error_handlers import CycleDetectedError, ValidationError


def flat_ids(trees):
    return {node.id for node in flatten_tree(trees)}


@pytest.fixture
def service(test_db):
    return TeamService(test_db)


@pytest.fixture
def fallback_service(test_db):
    return TeamService(test_db, settings=HierarchySettings(on_missing_view="fallback"))


class TestHierarchySettings:
    """Tests for HierarchySettings."""

    def test_defaults(self):
        settings = HierarchySettings()

        assert settings.use_materialized_view
        assert settings.on_missing_view == "rebuild"
        assert settings.path_separator == " > "

    def test_invalid_policy(self):
        with pytest.raises(ValueError):
            HierarchySettings(on_missing_view="ignore")

    def test_empty_separator(self):
        with pytest.raises(ValueError):
            HierarchySettings(path_separator="")

    def test_from_dict(self):
        settings = HierarchySettings.from_dict(
            {"use_materialized_view": False, "on_missing_view": "fallback"}
        )

        assert not settings.use_materialized_view
        assert settings.on_missing_view == "fallback"
        assert HierarchySettings.from_dict(None) == HierarchySettings()


@pytest.mark.integration
class TestHierarchyQueries:
    """Full and scoped hierarchy queries."""

    def test_full_hierarchy_nests_teams(self, service, small_forest_db):
        trees = service.get_full_hierarchy()

        assert [tree.id for tree in trees] == [small_forest_db["Engineering"]]
        assert [c.name for c in trees[0].children] == ["Platform", "Product"]
        assert [c.name for c in trees[0].children[0].children] == ["Infrastructure"]

    def test_missing_view_is_rebuilt(self, service, test_db, small_forest_db):
        assert not test_db.team_tree_view_exists()

        service.get_full_hierarchy()

        assert test_db.team_tree_view_exists()
        assert len(test_db.get_team_tree_from_view()) == 4

    def test_fallback_leaves_store_untouched(
        self, fallback_service, test_db, small_forest_db
    ):
        trees = fallback_service.get_full_hierarchy()

        assert flat_ids(trees) == set(small_forest_db.values())
        assert not test_db.team_tree_view_exists()

    def test_slow_path_does_not_create_view(self, service, test_db, small_forest_db):
        service.get_full_hierarchy(use_cache=False)

        assert not test_db.team_tree_view_exists()

    def test_cache_is_stale_until_refreshed(self, service, test_db, small_forest_db):
        service.initialize_materialized_view()
        mobile = service.create_team("Mobile", small_forest_db["Product"])

        assert mobile not in flat_ids(service.get_full_hierarchy(use_cache=True))
        assert mobile in flat_ids(service.get_full_hierarchy(use_cache=False))

        service.update_materialized_view()
        assert mobile in flat_ids(service.get_full_hierarchy(use_cache=True))

    def test_drop_then_query_rebuilds(self, service, test_db, small_forest_db):
        service.initialize_materialized_view()
        service.drop_materialized_view()
        assert not test_db.team_tree_view_exists()

        trees = service.get_full_hierarchy(use_cache=True)

        assert flat_ids(trees) == set(small_forest_db.values())
        assert test_db.team_tree_view_exists()

    def test_storage_stats_follow_view(self, service, small_forest_db):
        before = service.get_storage_stats()
        service.update_materialized_view()
        after = service.get_storage_stats()

        assert before["total_teams"] == 4
        assert not before["team_tree_view_exists"]
        assert before["cached_records"] == 0
        assert after["team_tree_view_exists"]
        assert after["cached_records"] == 4

    def test_fast_and_slow_paths_agree(self, service, forest_db):
        service.update_materialized_view()

        fast = [t.to_dict() for t in service.get_full_hierarchy(use_cache=True)]
        slow = [t.to_dict() for t in service.get_full_hierarchy(use_cache=False)]

        assert fast == slow

    @pytest.mark.parametrize("use_cache", [True, False])
    def test_scoped_hierarchy(self, service, small_forest_db, use_cache):
        trees = service.get_scoped_hierarchy("Infrastructure", use_cache=use_cache)

        assert [tree.id for tree in trees] == [small_forest_db["Engineering"]]
        assert flat_ids(trees) == {
            small_forest_db["Engineering"],
            small_forest_db["Platform"],
            small_forest_db["Infrastructure"],
        }

    @pytest.mark.parametrize("name", ["", "  ", "Nobody"])
    def test_scoped_miss(self, service, small_forest_db, name):
        assert service.get_scoped_hierarchy(name) == []
        assert service.get_scoped_hierarchy(name, use_cache=False) == []

    def test_empty_forest(self, service, test_db):
        assert service.get_full_hierarchy() == []
        assert service.update_materialized_view() == []
        assert service.get_team_tree_statistics().total_teams == 0


@pytest.mark.integration
class TestCycles:
    """Behaviour when raw writes close a parent cycle."""

    def test_refresh_fails_and_keeps_cache(
        self, service, test_db, small_forest_db, make_cycle
    ):
        previous = service.initialize_materialized_view()
        make_cycle(
            test_db, small_forest_db["Engineering"], small_forest_db["Infrastructure"]
        )

        with pytest.raises(CycleDetectedError):
            service.update_materialized_view()

        assert len(test_db.get_team_tree_from_view()) == len(previous)

    def test_slow_path_reports_cycle(
        self, service, test_db, small_forest_db, make_cycle
    ):
        make_cycle(
            test_db, small_forest_db["Engineering"], small_forest_db["Infrastructure"]
        )

        with pytest.raises(CycleDetectedError):
            service.get_full_hierarchy(use_cache=False)
        with pytest.raises(CycleDetectedError):
            service.get_scoped_hierarchy("Platform", use_cache=False)

    def test_rebuild_reports_cycle(self, service, test_db, small_forest_db, make_cycle):
        make_cycle(test_db, small_forest_db["Engineering"], small_forest_db["Platform"])

        with pytest.raises(CycleDetectedError):
            service.get_full_hierarchy()


@pytest.mark.integration
class TestLayout:
    """Hierarchy layout through the service."""

    def test_full_layout(self, service, small_forest_db):
        layout = service.get_hierarchy_layout()

        assert len(layout.nodes) == 4
        assert len(layout.edges) == 3
        assert not any(node.selected for node in layout.nodes)

    def test_scoped_layout_selects_team(self, service, small_forest_db):
        layout = service.get_hierarchy_layout("Infrastructure")

        selected = [node.id for node in layout.nodes if node.selected]
        assert selected == [str(small_forest_db["Infrastructure"])]
        assert len(layout.nodes) == 3

    def test_unknown_team_layout_is_empty(self, service, small_forest_db):
        layout = service.get_hierarchy_layout("Nobody")

        assert layout.nodes == []
        assert layout.edges == []


@pytest.mark.integration
class TestListings:
    """Listings, team tree records and statistics."""

    def test_paginated(self, service, small_forest_db):
        page = service.get_teams_paginated(TeamQueryFilters(name="pro", page_size=1))

        assert page.total == 1
        assert page.total_pages == 1
        assert [team.name for team in page.teams] == ["Product"]

    def test_teams_with_relations(self, service, small_forest_db):
        teams = service.get_teams_with_relations("Engineering")

        assert teams[0].child_count == 2
        assert service.get_team_count() == 4

    def test_team_tree_rebuilds_view(self, service, test_db, small_forest_db):
        records = service.get_team_tree(limit=2)

        assert [r.name for r in records] == ["Engineering", "Platform"]
        assert test_db.team_tree_view_exists()

    def test_team_tree_fallback(self, fallback_service, test_db, small_forest_db):
        records = fallback_service.get_team_tree()

        assert [r.name for r in records] == [
            "Engineering",
            "Platform",
            "Infrastructure",
            "Product",
        ]
        assert not test_db.team_tree_view_exists()

    def test_team_tree_negative_limit(self, service):
        with pytest.raises(ValueError):
            service.get_team_tree(limit=-1)

    def test_statistics_policies_agree(
        self, service, fallback_service, test_db, forest_db
    ):
        computed = fallback_service.get_team_tree_statistics()
        assert not test_db.team_tree_view_exists()

        cached = service.get_team_tree_statistics()

        assert test_db.team_tree_view_exists()
        assert cached.total_teams == computed.total_teams
        assert cached.total_root_teams == computed.total_root_teams
        assert cached.max_depth == computed.max_depth
        assert cached.avg_depth == pytest.approx(computed.avg_depth)
        assert cached.largest_team_size == computed.largest_team_size
        assert cached.teams_with_10_plus_descendants == (
            computed.teams_with_10_plus_descendants
        )


@pytest.mark.integration
class TestWrites:
    """Validated team writes."""

    def test_create_team_strips_name(self, service, test_db):
        team_id = service.create_team("  Data  ")

        assert test_db.get_team_by_id(team_id).name == "Data"

    def test_create_team_blank(self, service):
        with pytest.raises(ValidationError):
            service.create_team("   ")

    def test_create_team_unknown_parent(self, service):
        with pytest.raises(ValidationError):
            service.create_team("Orphan", parent_id=404)

    def test_move_team(self, service, test_db, small_forest_db):
        service.set_team_parent(
            small_forest_db["Infrastructure"], small_forest_db["Product"]
        )

        moved = test_db.get_team_by_id(small_forest_db["Infrastructure"])
        assert moved.parent_id == small_forest_db["Product"]

    def test_make_root(self, service, small_forest_db):
        service.set_team_parent(small_forest_db["Platform"], None)

        roots = service.get_full_hierarchy(use_cache=False)
        assert [tree.name for tree in roots] == ["Engineering", "Platform"]

    def test_reject_cycle(self, service, test_db, small_forest_db):
        with pytest.raises(ValidationError):
            service.set_team_parent(
                small_forest_db["Engineering"], small_forest_db["Infrastructure"]
            )

        assert test_db.get_team_by_id(small_forest_db["Engineering"]).parent_id is None

    def test_reject_self_parent(self, service, small_forest_db):
        with pytest.raises(ValidationError):
            service.set_team_parent(
                small_forest_db["Platform"], small_forest_db["Platform"]
            )

    def test_unknown_teams(self, service, small_forest_db):
        with pytest.raises(ValidationError):
            service.set_team_parent(404, None)
        with pytest.raises(ValidationError):
            service.set_team_parent(small_forest_db["Platform"], 404)


@pytest.mark.integration
class TestFromConfig:
    """Service construction from configuration."""

    def test_from_config(self, test_db, test_config_dict, temp_dir):
        test_config_dict["hierarchy"]["on_missing_view"] = "fallback"
        test_config_dict["hierarchy"]["path_separator"] = " / "
        test_config_dict["layout"]["node_spacing"] = 40
        config = Config.from_dict(test_config_dict, project_root=temp_dir)

        service = TeamService.from_config(config, test_db)

        assert service.settings.on_missing_view == "fallback"
        assert service.materializer.path_separator == " / "
        assert service.layout_config.node_spacing == 40
