"""
Metric names referenced by PromQL expressions.

Grafana dashboards embed template variables (``$job``, ``$__rate_interval``)
that are not valid PromQL, so they are replaced with a dummy duration literal
before parsing.
"""

from __future__ import annotations

import re
from typing import List, Sequence, Tuple

import structlog

from paneldump.promql.ast import VectorSelector, walk
from paneldump.promql.parser import METRIC_NAME_LABEL, ParseError, parse_expr

logger = structlog.get_logger()

_MACRO = re.compile(r"\$\w+")
MACRO_PLACEHOLDER = "5m"


def strip_grafana_macros(expr: str) -> str:
    """Replace ``$name`` variables with a dummy literal."""
    return _MACRO.sub(MACRO_PLACEHOLDER, expr)


def selector_metric_name(selector: VectorSelector) -> str:
    """
    Metric name of a vector selector, or "" when it has none.

    An explicit name wins. Otherwise the first ``__name__`` matcher is used if
    it is an equality match; a regex ``__name__`` matcher can select many
    metrics and yields nothing.
    """
    if selector.name:
        return selector.name
    for matcher in selector.matchers:
        if matcher.name == METRIC_NAME_LABEL and matcher.op in ("=", "=~"):
            return matcher.value if matcher.is_equal else ""
    return ""


def extract_metric_names(exprs: Sequence[str]) -> Tuple[List[str], List[str]]:
    """
    Parse expressions and collect the metric names they select.

    Args:
        exprs: PromQL expressions, possibly containing Grafana variables

    Returns:
        (metrics, errors): metric names deduplicated in first-seen order, and
        one entry per expression holding its parse error or ""
    """
    metrics: List[str] = []
    seen: set[str] = set()
    errors: List[str] = [""] * len(exprs)

    for index, expr in enumerate(exprs):
        try:
            tree = parse_expr(strip_grafana_macros(expr))
        except ParseError as exc:
            errors[index] = str(exc)
            continue

        for node in walk(tree):
            if not isinstance(node, VectorSelector):
                continue
            name = selector_metric_name(node)
            if name and name not in seen:
                seen.add(name)
                metrics.append(name)

    failed = sum(1 for e in errors if e)
    if failed:
        logger.debug("promql_parse_errors", failed=failed, total=len(exprs))
    return metrics, errors
