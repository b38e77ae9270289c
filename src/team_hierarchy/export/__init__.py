"""JSON export of hierarchy query results."""

from .json_exporter import EXPORTER_VERSION, HierarchyJSONExporter, JSONExportError

__all__ = ["EXPORTER_VERSION", "HierarchyJSONExporter", "JSONExportError"]
