"""JSON Exporter Module.

This module exports hierarchy trees, layouts, materialized records and tree
statistics to JSON. Every document is wrapped in a small envelope::

    {
        "exporter_version": "1.0.0",
        "exported_at": "2026-01-01T12:00:00+00:00",
        "kind": "hierarchy",
        "data": ...
    }

Example:
    >>> exporter = HierarchyJSONExporter(json_format="pretty")
    >>> exporter.export_hierarchy(trees, Path("out/hierarchy.json"))
"""

import json
import logging
import time
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Sequence, Union

from ..models.data_structures import (
    LayoutResult,
    MaterializedTeam,
    TeamTree,
    TeamTreeStatistics,
)
from ..utils.error_handlers import TeamHierarchyError
from ..utils.file_utils import atomic_write
from ..utils.geometry_utils import BoundingBox


logger = logging.getLogger(__name__)

# Version for envelope tracking
EXPORTER_VERSION = "1.0.0"

ExportKind = Literal["hierarchy", "layout", "team_tree", "statistics"]


class JSONExportError(TeamHierarchyError):
    """Exception raised when serialization or writing fails."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(
            message=message,
            stage="export",
            recoverable=False,
            original_error=original_error,
        )


class HierarchyJSONEncoder(json.JSONEncoder):
    """Custom JSON encoder for hierarchy data structures.

    Handles serialization of:
    - datetime objects -> ISO 8601 strings
    - Enum objects -> their values
    - BoundingBox objects -> dictionaries
    - Path objects -> strings
    - objects with ``to_dict()`` -> that dictionary
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        elif isinstance(obj, Enum):
            return obj.value
        elif isinstance(obj, BoundingBox):
            return {
                "x": obj.x,
                "y": obj.y,
                "width": obj.width,
                "height": obj.height,
            }
        elif isinstance(obj, Path):
            return str(obj)
        elif hasattr(obj, "to_dict"):
            return obj.to_dict()
        return super().default(obj)


class HierarchyJSONExporter:
    """Exports hierarchy query results to JSON files or strings.

    Attributes:
        json_format: ``"pretty"`` (indented) or ``"compact"``.
    """

    def __init__(self, json_format: Literal["pretty", "compact"] = "pretty") -> None:
        """Initialize the exporter.

        Raises:
            ValueError: If json_format is not "pretty" or "compact".
        """
        if json_format not in ("pretty", "compact"):
            raise ValueError(
                f"json_format must be 'pretty' or 'compact', got {json_format!r}"
            )
        self.json_format = json_format

    def build_envelope(self, kind: ExportKind, data: Any) -> Dict[str, Any]:
        """Wrap ``data`` with version, timestamp and kind."""
        return {
            "exporter_version": EXPORTER_VERSION,
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "kind": kind,
            "data": data,
        }

    def to_string(self, kind: ExportKind, data: Any) -> str:
        """Serialize an envelope to a JSON string.

        Raises:
            JSONExportError: If serialization fails.
        """
        indent = 2 if self.json_format == "pretty" else None
        try:
            return json.dumps(
                self.build_envelope(kind, data),
                indent=indent,
                cls=HierarchyJSONEncoder,
                ensure_ascii=False,
            )
        except (TypeError, ValueError) as e:
            error_msg = f"Failed to serialize {kind} export: {e}"
            logger.error(error_msg)
            raise JSONExportError(error_msg, original_error=e) from e

    def export(
        self, kind: ExportKind, data: Any, output_path: Union[str, Path]
    ) -> Path:
        """Write an envelope atomically to ``output_path``.

        Parent directories are created when missing.

        Returns:
            The output path.

        Raises:
            JSONExportError: If serialization or the write fails.
        """
        start_time = time.time()
        output_path = Path(output_path)
        content = self.to_string(kind, data)

        try:
            atomic_write(str(output_path), content)
        except OSError as e:
            error_msg = f"Failed to write {kind} export to {output_path}: {e}"
            logger.error(error_msg)
            raise JSONExportError(error_msg, original_error=e) from e

        duration = time.time() - start_time
        file_size = output_path.stat().st_size / 1024  # KB
        logger.info(
            f"Exported {kind} to {output_path} ({file_size:.2f} KB in {duration:.2f}s)"
        )
        return output_path

    def export_hierarchy(
        self, trees: Sequence[TeamTree], output_path: Union[str, Path]
    ) -> Path:
        return self.export("hierarchy", [tree.to_dict() for tree in trees], output_path)

    def export_layout(
        self, layout: LayoutResult, output_path: Union[str, Path]
    ) -> Path:
        return self.export("layout", layout.to_dict(), output_path)

    def export_team_tree(
        self, records: Sequence[MaterializedTeam], output_path: Union[str, Path]
    ) -> Path:
        return self.export(
            "team_tree", [record.to_dict() for record in records], output_path
        )

    def export_statistics(
        self, statistics: TeamTreeStatistics, output_path: Union[str, Path]
    ) -> Path:
        return self.export("statistics", statistics.to_dict(), output_path)

    @staticmethod
    def format_hierarchy(trees: Sequence[TeamTree]) -> List[Dict[str, Any]]:
        """Nested dictionaries for ``trees`` without an envelope."""
        return [tree.to_dict() for tree in trees]
