"""Tree layout engine for team hierarchy diagrams.

Assigns non-overlapping top-left positions to a forest of sized rectangular
nodes, given only parent to child edges. The layout is a deterministic tidy
tree: every subtree gets a horizontal slice at least as wide as its widest
level, parents are centered over their children and a single child sits
straight below its parent.

All functions here are pure. Inputs are never mutated.
"""

import logging
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from ..models.data_structures import (
    LayoutEdge,
    LayoutNode,
    LayoutResult,
    Position,
    TeamTree,
)
from ..utils.error_handlers import LayoutError, log_error_with_context
from ..utils.geometry_utils import BoundingBox, merge_bboxes
from .hierarchy_builder import build_team_map, flatten_tree, get_expanded_team_ids


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayoutConfig:
    """Sizes and spacings used by the layout engine, in pixels.

    Attributes:
        node_width: Width used for nodes that carry no width of their own.
        node_height: Height of generated nodes.
        level_height: Vertical distance between consecutive tree levels.
        node_spacing: Horizontal spacing added to each node's slice and used
            as the gap between root trees. Siblings are separated by half of
            it.
        min_width: Smallest width of a label-sized node.
        padding: Extra width added to the label-derived width.
        approx_char_width: Width assumed for one label character.
    """

    node_width: float = 180
    node_height: float = 60
    level_height: float = 120
    node_spacing: float = 15
    min_width: float = 180
    padding: float = 2
    approx_char_width: float = 10

    def __post_init__(self) -> None:
        """Validates configuration parameters."""
        for config_field in fields(self):
            value = getattr(self, config_field.name)
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise ValueError(f"{config_field.name} must be a number")
            if config_field.name == "padding":
                if value < 0:
                    raise ValueError("padding must be non-negative")
            elif value <= 0:
                raise ValueError(f"{config_field.name} must be positive")

    @classmethod
    def from_dict(cls, values: Optional[Mapping[str, Any]]) -> "LayoutConfig":
        """Build a config from a ``layout`` section, ignoring unknown keys."""
        known = {config_field.name for config_field in fields(cls)}
        return cls(**{k: v for k, v in (values or {}).items() if k in known})


def node_width_for_label(label: str, config: Optional[LayoutConfig] = None) -> float:
    """Rendered width of a node showing ``label``.

    Example:
        >>> node_width_for_label("Platform")
        180
        >>> node_width_for_label("Infrastructure Reliability Group")
        322
    """
    config = config or LayoutConfig()
    return max(
        config.min_width, len(label) * config.approx_char_width + config.padding
    )


def _effective_width(node: LayoutNode, config: LayoutConfig) -> float:
    width = node.width if node.width is not None else config.node_width
    if width < 0:
        raise LayoutError(
            f"Node {node.id} has negative width {width}", node_id=node.id
        )
    return width


def _build_hierarchy_maps(
    nodes: Sequence[LayoutNode], edges: Sequence[LayoutEdge]
) -> Tuple[Dict[str, LayoutNode], List[str], Dict[str, List[str]]]:
    """Index nodes, find roots and collect children in edge order.

    Edges whose source or target is not a known node are ignored for
    adjacency. Any edge target still counts as having a parent.
    """
    node_map: Dict[str, LayoutNode] = {}
    for node in nodes:
        node_map.setdefault(node.id, node)

    children_map: Dict[str, List[str]] = {node_id: [] for node_id in node_map}
    for edge in edges:
        if edge.source in children_map and edge.target in node_map:
            children_map[edge.source].append(edge.target)

    has_parent = {edge.target for edge in edges}
    roots = [node_id for node_id in node_map if node_id not in has_parent]
    return node_map, roots, children_map


def _compute_subtree_widths(
    order: Iterable[str],
    widths: Dict[str, float],
    children_map: Dict[str, List[str]],
    spacing: float,
) -> Dict[str, float]:
    """Width of the horizontal slice each subtree needs.

    A leaf needs its own width plus spacing. An internal node needs the larger
    of that and the sum of its children's slices. Children that are still
    being computed (back edges on cyclic input) contribute nothing.

    The half-spacing gaps placed between sibling slices are not part of the
    parent's slice. A subtree with k >= 2 children therefore spreads
    ``spacing * 0.5 * (k - 1) / 2`` past its slice on each side, and nodes
    under different parents may overlap at deeper levels. Siblings never
    overlap.
    """
    memo: Dict[str, float] = {}
    in_progress: Set[str] = set()

    for start in order:
        if start in memo:
            continue
        stack: List[Tuple[str, bool]] = [(start, False)]
        while stack:
            node_id, expanded = stack.pop()
            if expanded:
                total = sum(memo.get(child, 0.0) for child in children_map[node_id])
                memo[node_id] = max(widths[node_id] + spacing, total)
                in_progress.discard(node_id)
                continue
            if node_id in memo or node_id in in_progress:
                continue
            in_progress.add(node_id)
            stack.append((node_id, True))
            for child in reversed(children_map[node_id]):
                if child not in memo and child not in in_progress:
                    stack.append((child, False))

    return memo


def _calculate_tree_layout(
    nodes: Sequence[LayoutNode], edges: Sequence[LayoutEdge], config: LayoutConfig
) -> LayoutResult:
    node_map, roots, children_map = _build_hierarchy_maps(nodes, edges)
    widths = {
        node_id: _effective_width(node, config) for node_id, node in node_map.items()
    }

    # Roots first so widths of real trees do not depend on cyclic leftovers
    root_ids = set(roots)
    order = roots + [node_id for node_id in node_map if node_id not in root_ids]
    subtree_widths = _compute_subtree_widths(
        order, widths, children_map, config.node_spacing
    )

    positions: Dict[str, Position] = {}
    sibling_gap = config.node_spacing * 0.5

    def place_tree(root_id: str, root_center_x: float) -> None:
        stack: List[Tuple[str, float, float]] = [(root_id, root_center_x, 0.0)]
        while stack:
            node_id, center_x, y = stack.pop()
            if node_id in positions:
                continue
            positions[node_id] = Position(x=center_x - widths[node_id] / 2, y=y)

            children = children_map[node_id]
            child_y = y + config.level_height
            if len(children) == 1:
                stack.append((children[0], center_x, child_y))
            elif children:
                total_child_width = sum(subtree_widths[c] for c in children)
                total_required = total_child_width + sibling_gap * (len(children) - 1)
                current_x = center_x - total_required / 2
                placements = []
                for child in children:
                    child_width = subtree_widths[child]
                    placements.append((child, current_x + child_width / 2, child_y))
                    current_x += child_width + sibling_gap
                # Reverse so the leftmost child is placed first
                stack.extend(reversed(placements))

    current_x = 0.0
    placed_any = False

    def place_next(root_id: str) -> None:
        nonlocal current_x, placed_any
        if placed_any:
            current_x += config.node_spacing
        root_width = subtree_widths[root_id]
        place_tree(root_id, current_x + root_width / 2)
        current_x += root_width
        placed_any = True

    for root_id in roots:
        place_next(root_id)

    unreached = [node_id for node_id in node_map if node_id not in positions]
    if unreached:
        logger.warning(
            f"{len(unreached)} layout nodes are not reachable from a root; "
            f"laying them out as extra roots"
        )
        for node_id in unreached:
            if node_id not in positions:
                place_next(node_id)

    layouted = [
        replace(node, position=positions[node.id], width=widths[node.id])
        for node in nodes
    ]
    return LayoutResult(nodes=layouted, edges=list(edges))


def get_layouted_elements(
    nodes: Sequence[LayoutNode],
    edges: Sequence[LayoutEdge],
    config: Optional[LayoutConfig] = None,
) -> LayoutResult:
    """Position nodes as a tidy forest.

    Roots are nodes without an incoming edge and are laid out left to right
    in input order, one ``node_spacing`` apart. Children follow edge order.

    Args:
        nodes: Nodes to position. Nodes without a width use
            ``config.node_width``.
        edges: Parent to child edges. Passed through unchanged.
        config: Layout sizes. Defaults to ``LayoutConfig()``.

    Returns:
        LayoutResult with every input node exactly once, in input order.
        On any internal error the input nodes are returned unpositioned.
    """
    if not nodes:
        return LayoutResult(nodes=list(nodes), edges=list(edges))

    config = config or LayoutConfig()
    try:
        return _calculate_tree_layout(nodes, edges, config)
    except Exception as e:
        log_error_with_context(
            e, logger, {"stage": "layout", "nodes": len(nodes), "edges": len(edges)}
        )
        return LayoutResult(nodes=list(nodes), edges=list(edges))


def build_layout_elements(
    trees: Sequence[TeamTree],
    highlighted_team_id: Optional[int] = None,
    config: Optional[LayoutConfig] = None,
) -> LayoutResult:
    """Turn hierarchy trees into unpositioned layout nodes and edges.

    With a highlighted team only that team, its ancestors and its
    descendants are kept. Node widths follow the label length. An edge is
    one-to-one when its parent has exactly one visible child.

    Args:
        trees: Hierarchy trees as returned by the hierarchy queries.
        highlighted_team_id: Optional team to focus on.
        config: Layout sizes.

    Returns:
        LayoutResult with zero positions.
    """
    config = config or LayoutConfig()
    teams = flatten_tree(trees)
    highlighted = [highlighted_team_id] if highlighted_team_id is not None else []
    visible_ids = set(get_expanded_team_ids(teams, highlighted))
    team_map = build_team_map(teams)

    nodes: List[LayoutNode] = []
    edges: List[LayoutEdge] = []
    for team in teams:
        if team.id not in visible_ids:
            continue
        nodes.append(
            LayoutNode(
                id=str(team.id),
                label=team.name,
                width=node_width_for_label(team.name, config),
                height=config.node_height,
                selected=team.id in highlighted,
            )
        )

        visible_children = [
            child for child in team_map[team.id].children if child.id in visible_ids
        ]
        for child in visible_children:
            edges.append(
                LayoutEdge(
                    id=f"{team.id}->{child.id}",
                    source=str(team.id),
                    target=str(child.id),
                    is_one_to_one=len(visible_children) == 1,
                )
            )

    return LayoutResult(nodes=nodes, edges=edges)


def layout_hierarchy(
    trees: Sequence[TeamTree],
    highlighted_team_id: Optional[int] = None,
    config: Optional[LayoutConfig] = None,
) -> LayoutResult:
    """Build layout elements from trees and position them."""
    elements = build_layout_elements(trees, highlighted_team_id, config)
    return get_layouted_elements(elements.nodes, elements.edges, config)


def layout_bounds(
    result: LayoutResult, config: Optional[LayoutConfig] = None
) -> BoundingBox:
    """Bounding box of every positioned node.

    Returns:
        Zero-area box at the origin for an empty result.
    """
    config = config or LayoutConfig()
    boxes = [
        BoundingBox(
            x=node.position.x,
            y=node.position.y,
            width=node.width if node.width is not None else config.node_width,
            height=node.height,
        )
        for node in result.nodes
    ]
    return merge_bboxes(boxes)
