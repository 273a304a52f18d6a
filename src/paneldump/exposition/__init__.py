"""Prometheus text exposition output."""

from paneldump.exposition.converter import (
    convert_result,
    format_labels,
    format_line,
    frame_lines,
    result_to_text,
)
from paneldump.exposition.export import (
    DEFAULT_FILENAME,
    export_filename,
    sanitize_filename,
    save_export,
)

__all__ = [
    "DEFAULT_FILENAME",
    "convert_result",
    "export_filename",
    "format_labels",
    "format_line",
    "frame_lines",
    "result_to_text",
    "sanitize_filename",
    "save_export",
]
