"""
Error types and CLI error handling for paneldump.

Every failure is terminal for a single export run; nothing here retries.

Exit Codes:
- 0: Success
- 1: Warning (run finished but produced nothing to save)
- 10: Parameter or configuration error
- 11: Grafana error (dashboard fetch, panel lookup, query execution)
- 127: Unknown/internal error
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    WARNING = 1
    CONFIG_ERROR = 10
    GRAFANA_ERROR = 11
    UNKNOWN_ERROR = 127


class PanelDumpError(Exception):
    """Base exception for paneldump errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(PanelDumpError):
    """Raised for configuration-related errors."""

    exit_code = ExitCode.CONFIG_ERROR


class ParameterError(PanelDumpError):
    """Raised when the export parameters cannot be used."""

    exit_code = ExitCode.CONFIG_ERROR


class MissingParameterError(ParameterError):
    """One of dashboard, panel or timerange is absent."""

    def __init__(self, name: str):
        super().__init__(f"Missing required parameter: {name}", {"parameter": name})
        self.name = name


class InvalidParameterError(ParameterError):
    """A parameter is present but malformed."""

    def __init__(self, name: str, reason: str):
        super().__init__(f"Invalid parameter {name}: {reason}", {"parameter": name})
        self.name = name


class DashboardFetchError(PanelDumpError):
    """Base class for dashboard fetch failures."""

    exit_code = ExitCode.GRAFANA_ERROR


class DashboardNotFoundError(DashboardFetchError):
    """The dashboard request failed (missing uid, unauthorized, unreachable)."""

    def __init__(self, dashboard_uid: str, reason: str | None = None):
        message = f"Dashboard {dashboard_uid} not found"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, {"dashboard_uid": dashboard_uid})
        self.dashboard_uid = dashboard_uid


class DashboardInvalidError(DashboardFetchError):
    """The dashboard request succeeded but the body has no usable dashboard."""

    def __init__(self, dashboard_uid: str):
        super().__init__(
            "Dashboard not found or invalid response shape",
            {"dashboard_uid": dashboard_uid},
        )
        self.dashboard_uid = dashboard_uid


class PanelNotFoundError(PanelDumpError):
    """The dashboard is valid but no panel has the requested id."""

    exit_code = ExitCode.GRAFANA_ERROR

    def __init__(self, dashboard_uid: str, panel_id: int):
        super().__init__(
            f"Panel {panel_id} not found in dashboard {dashboard_uid}",
            {"dashboard_uid": dashboard_uid, "panel_id": panel_id},
        )
        self.dashboard_uid = dashboard_uid
        self.panel_id = panel_id


class QueryExecutionError(PanelDumpError):
    """The datasource query endpoint rejected the batch or was unreachable."""

    exit_code = ExitCode.GRAFANA_ERROR


# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI command functions that maps exceptions to exit codes.

    Args:
        show_traceback: If True, show full traceback for unexpected errors
        log_errors: If True, log errors to structlog

    Exit codes:
        - PanelDumpError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127 (unknown error)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except PanelDumpError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=int(e.exit_code),
                        **e.details,
                    )
                from paneldump.cli.ux import error as print_error

                print_error(format_error_message(e))
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return 130
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=int(ExitCode.UNKNOWN_ERROR),
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: PanelDumpError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg
