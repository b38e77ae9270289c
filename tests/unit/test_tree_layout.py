"""
Unit tests for tree_layout module.
"""

import logging

import pytest

from team_hierarchy.models.data_structures import (
    LayoutEdge,
    LayoutNode,
    Position,
    Team,
)
from team_hierarchy.processing.hierarchy_builder import build_full_hierarchy
from team_hierarchy.processing.tree_layout import (
    LayoutConfig,
    build_layout_elements,
    get_layouted_elements,
    layout_bounds,
    layout_hierarchy,
    node_width_for_label,
)


def edge(source, target):
    return LayoutEdge(id=f"{source}->{target}", source=source, target=target)


def star(child_count, width=100.0):
    """One root ``r`` with ``child_count`` leaf children."""
    nodes = [LayoutNode(id="r", label="Root", width=width)]
    edges = []
    for index in range(child_count):
        child_id = f"c{index}"
        nodes.append(LayoutNode(id=child_id, label=child_id, width=width))
        edges.append(edge("r", child_id))
    return nodes, edges


def center_x(node):
    return node.position.x + node.width / 2


def overlaps(left, right):
    """Whether two nodes share horizontal extent of positive length."""
    return (
        left.position.x < right.position.x + right.width
        and right.position.x < left.position.x + left.width
    )


class TestLayoutConfig:
    """Tests for LayoutConfig validation."""

    def test_defaults(self):
        config = LayoutConfig()

        assert config.node_width == 180
        assert config.level_height == 120
        assert config.node_spacing == 15

    def test_non_positive_spacing_rejected(self):
        with pytest.raises(ValueError):
            LayoutConfig(node_spacing=0)

    def test_zero_padding_allowed(self):
        assert LayoutConfig(padding=0).padding == 0

    def test_negative_padding_rejected(self):
        with pytest.raises(ValueError):
            LayoutConfig(padding=-1)

    def test_non_number_rejected(self):
        with pytest.raises(ValueError):
            LayoutConfig(node_width="wide")
        with pytest.raises(ValueError):
            LayoutConfig(node_width=True)

    def test_from_dict_ignores_unknown_keys(self):
        config = LayoutConfig.from_dict({"node_spacing": 30, "colour": "blue"})

        assert config.node_spacing == 30
        assert config.node_width == 180

    def test_from_dict_none(self):
        assert LayoutConfig.from_dict(None) == LayoutConfig()


class TestNodeWidthForLabel:
    """Tests for label-derived node widths."""

    def test_short_label_uses_min_width(self):
        assert node_width_for_label("Platform") == 180

    def test_long_label(self):
        assert node_width_for_label("Infrastructure Reliability Group") == 322

    def test_custom_config(self):
        config = LayoutConfig(min_width=50, approx_char_width=8, padding=4)

        assert node_width_for_label("Platform", config) == 68


class TestGetLayoutedElements:
    """Tests for the layout algorithm."""

    def test_empty_input(self):
        result = get_layouted_elements([], [])

        assert result.nodes == []
        assert result.edges == []

    def test_single_root_with_five_children(self):
        """Test that children are spread evenly and centered on the parent."""
        nodes, edges = star(5)
        config = LayoutConfig()

        result = get_layouted_elements(nodes, edges, config)
        by_id = {node.id: node for node in result.nodes}
        children = [by_id[f"c{i}"] for i in range(5)]

        root_center = center_x(by_id["r"])
        span_center = (center_x(children[0]) + center_x(children[-1])) / 2
        assert span_center == pytest.approx(root_center)

        # Each child's slice is its width plus spacing; siblings are half a
        # spacing apart
        for left, right in zip(children, children[1:]):
            distance = center_x(right) - center_x(left)
            assert distance >= left.width + config.node_spacing
            assert distance == pytest.approx(
                left.width + config.node_spacing * 1.5
            )

        assert all(child.position.y == config.level_height for child in children)
        assert by_id["r"].position.y == 0

    def test_single_child_is_centered(self):
        nodes = [
            LayoutNode(id="p", label="Parent", width=300),
            LayoutNode(id="c", label="Child", width=100),
        ]

        result = get_layouted_elements(nodes, [edge("p", "c")])
        parent, child = result.nodes

        assert center_x(child) == pytest.approx(center_x(parent))
        assert child.position.y == 120

    def test_roots_laid_out_left_to_right(self):
        nodes = [
            LayoutNode(id="a", label="A", width=100),
            LayoutNode(id="b", label="B", width=100),
        ]

        result = get_layouted_elements(nodes, [])
        first, second = result.nodes

        assert first.position.x < second.position.x
        # Each root slice is width + spacing, roots one spacing apart
        assert second.position.x - first.position.x == pytest.approx(130)

    def test_siblings_do_not_overlap(self, forest_teams):
        result = layout_hierarchy(build_full_hierarchy(forest_teams))
        by_id = {node.id: node for node in result.nodes}

        children_of = {}
        for layout_edge in result.edges:
            children_of.setdefault(layout_edge.source, []).append(
                by_id[layout_edge.target]
            )

        for siblings in children_of.values():
            for index, left in enumerate(siblings):
                for right in siblings[index + 1 :]:
                    assert not overlaps(left, right)

    def test_layout_is_deterministic(self, forest_teams):
        elements = build_layout_elements(build_full_hierarchy(forest_teams))

        first = get_layouted_elements(elements.nodes, elements.edges)
        second = get_layouted_elements(elements.nodes, elements.edges)

        assert [n.position for n in first.nodes] == [n.position for n in second.nodes]

    def test_output_keeps_input_order_and_fills_width(self):
        nodes = [
            LayoutNode(id="c", label="Child"),
            LayoutNode(id="p", label="Parent"),
        ]

        result = get_layouted_elements(nodes, [edge("p", "c")])

        assert [node.id for node in result.nodes] == ["c", "p"]
        assert all(node.width == 180 for node in result.nodes)
        assert nodes[0].width is None

    def test_negative_width_returns_input(self, caplog):
        """Test that a layout failure hands back the unpositioned input."""
        nodes = [
            LayoutNode(id="a", label="A", width=-5),
            LayoutNode(id="b", label="B", width=100),
        ]

        with caplog.at_level(logging.ERROR):
            result = get_layouted_elements(nodes, [edge("a", "b")])

        assert result.nodes == nodes
        assert all(node.position == Position() for node in result.nodes)
        assert "negative width" in caplog.text

    def test_cycle_terminates(self):
        nodes = [LayoutNode(id="a", label="A"), LayoutNode(id="b", label="B")]
        edges = [edge("a", "b"), edge("b", "a")]

        result = get_layouted_elements(nodes, edges)

        assert [node.id for node in result.nodes] == ["a", "b"]
        assert result.nodes[1].position.y == 120

    def test_edges_passed_through(self):
        nodes, edges = star(2)

        result = get_layouted_elements(nodes, edges)

        assert result.edges == edges


class TestBuildLayoutElements:
    """Tests for turning hierarchy trees into layout elements."""

    def test_full_forest(self, small_forest_teams):
        result = build_layout_elements(build_full_hierarchy(small_forest_teams))

        assert [node.id for node in result.nodes] == ["1", "2", "4", "3"]
        assert {(e.source, e.target, e.is_one_to_one) for e in result.edges} == {
            ("1", "2", False),
            ("1", "3", False),
            ("2", "4", True),
        }
        assert not any(node.selected for node in result.nodes)

    def test_highlighted_team(self, small_forest_teams):
        trees = build_full_hierarchy(small_forest_teams)

        result = build_layout_elements(trees, highlighted_team_id=4)

        assert [node.id for node in result.nodes] == ["1", "2", "4"]
        assert [node.selected for node in result.nodes] == [False, False, True]
        assert all(e.is_one_to_one for e in result.edges)
        assert [e.id for e in result.edges] == ["1->2", "2->4"]

    def test_widths_follow_labels(self):
        trees = build_full_hierarchy(
            [Team(id=1, name="Infrastructure Reliability Group")]
        )

        result = build_layout_elements(trees)

        assert result.nodes[0].width == 322
        assert result.nodes[0].height == 60


class TestLayoutBounds:
    """Tests for layout_bounds."""

    def test_empty(self):
        bounds = layout_bounds(layout_hierarchy([]))

        assert (bounds.width, bounds.height) == (0, 0)

    def test_two_level_forest_bounds(self, small_forest_teams):
        result = layout_hierarchy(build_full_hierarchy(small_forest_teams))

        bounds = layout_bounds(result)

        # Three levels of 60px nodes, 120px apart
        assert bounds.height == 300
        assert bounds.width >= 2 * 180
