"""Materialization, hierarchy assembly and layout for the team forest."""

from .hierarchy_builder import (
    build_full_hierarchy,
    build_full_hierarchy_from_records,
    build_scoped_hierarchy,
    build_scoped_hierarchy_from_records,
    flatten_tree,
)
from .materializer import TeamTreeMaterializer, compute_team_tree_records
from .tree_layout import LayoutConfig, get_layouted_elements, layout_hierarchy

__all__ = [
    "build_full_hierarchy",
    "build_full_hierarchy_from_records",
    "build_scoped_hierarchy",
    "build_scoped_hierarchy_from_records",
    "flatten_tree",
    "TeamTreeMaterializer",
    "compute_team_tree_records",
    "LayoutConfig",
    "get_layouted_elements",
    "layout_hierarchy",
]
