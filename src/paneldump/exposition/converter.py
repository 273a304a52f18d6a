"""
Convert Grafana query results into Prometheus text exposition lines.

Each sample of a frame becomes one line::

    metric_name{label="value",other="value"} <value> <timestamp>

Frames without a ``time`` and a ``number`` field, or whose two columns differ
in length, produce no lines. That is not an error: the rest of the result is
still converted.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Iterator, List, Mapping

import structlog

from paneldump.queries.results import Frame, QueryResult

logger = structlog.get_logger()

METRIC_NAME_LABEL = "__name__"


def format_labels(labels: Mapping[str, str]) -> str:
    """Render ``{k="v",...}`` in mapping order; empty mapping renders nothing."""
    if not labels:
        return ""
    rendered = ",".join(f'{key}="{value}"' for key, value in labels.items())
    return "{" + rendered + "}"


def format_value(value: Any) -> str:
    if value is None:
        return "NaN"
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "+Inf" if value > 0 else "-Inf"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def format_timestamp(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_line(metric: str, labels: Mapping[str, str], value: Any, timestamp: Any) -> str:
    return f"{metric}{format_labels(labels)} {format_value(value)} {format_timestamp(timestamp)}"


def frame_lines(frame: Frame) -> Iterator[str]:
    """Yield exposition lines for one frame in sample order."""
    time_index = frame.first_index_of_type("time")
    number_index = frame.first_index_of_type("number")
    if time_index is None or number_index is None:
        logger.debug("frame_skipped", reason="missing time or number field", frame=frame.name)
        return

    times = frame.column(time_index)
    numbers = frame.column(number_index)
    if times is None or numbers is None:
        logger.debug("frame_skipped", reason="missing values", frame=frame.name)
        return
    if len(times) != len(numbers):
        logger.debug(
            "frame_skipped",
            reason="column length mismatch",
            frame=frame.name,
            times=len(times),
            numbers=len(numbers),
        )
        return

    value_field = frame.fields[number_index]
    if METRIC_NAME_LABEL in value_field.labels:
        metric = value_field.labels[METRIC_NAME_LABEL]
    else:
        metric = value_field.display_name
    labels: Dict[str, str] = {k: v for k, v in value_field.labels.items() if k != METRIC_NAME_LABEL}

    for timestamp, value in zip(times, numbers):
        yield format_line(metric, labels, value, timestamp)


def convert_result(result: QueryResult) -> List[str]:
    """
    Convert every result group into exposition lines.

    Groups are walked in response order (not guaranteed stable across Grafana
    versions); frames in received order; samples in index order.

    Args:
        result: Decoded ``/api/ds/query`` response

    Returns:
        Exposition lines without trailing newlines
    """
    lines: List[str] = []
    for ref_id, group in result.groups.items():
        if group.error:
            logger.warning("query_error", ref_id=ref_id, error=group.error, status=group.status)
        if not group.frames:
            continue
        for frame in group.frames:
            lines.extend(frame_lines(frame))
    return lines


def result_to_text(result: QueryResult) -> str:
    """Join converted lines with a single newline between them."""
    return "\n".join(convert_result(result))
