"""PromQL parsing and metric-name extraction."""

from paneldump.promql.metrics import extract_metric_names, strip_grafana_macros
from paneldump.promql.parser import ParseError, parse_expr

__all__ = ["ParseError", "extract_metric_names", "parse_expr", "strip_grafana_macros"]
