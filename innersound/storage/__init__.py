"""Storage of clips, analysis exports and session metadata."""

from .exporter import export_report, parse_export
from .file_manager import FileManager

__all__ = [
    "export_report",
    "parse_export",
    "FileManager",
]
