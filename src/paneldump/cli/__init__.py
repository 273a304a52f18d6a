"""
CLI commands for paneldump.
"""

from paneldump.cli.export import export_command, queries_command
from paneldump.cli.parse import parse_command

__all__ = [
    "export_command",
    "parse_command",
    "queries_command",
]
