"""Core shared types for paneldump."""

from paneldump.core.errors import (
    ConfigurationError,
    DashboardFetchError,
    DashboardInvalidError,
    DashboardNotFoundError,
    ExitCode,
    InvalidParameterError,
    MissingParameterError,
    PanelDumpError,
    PanelNotFoundError,
    ParameterError,
    QueryExecutionError,
)

__all__ = [
    "ConfigurationError",
    "DashboardFetchError",
    "DashboardInvalidError",
    "DashboardNotFoundError",
    "ExitCode",
    "InvalidParameterError",
    "MissingParameterError",
    "PanelDumpError",
    "PanelNotFoundError",
    "ParameterError",
    "QueryExecutionError",
]
