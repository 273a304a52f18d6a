"""Tests for the PromQL parser and metric name extraction."""

import pytest

from paneldump.promql import extract_metric_names
from paneldump.promql.ast import AggregateExpr, BinaryExpr, MatrixSelector, ValueType, VectorSelector, walk
from paneldump.promql.metrics import strip_grafana_macros
from paneldump.promql.parser import ParseError, parse_expr


class TestParseExpr:
    def test_selector_with_matchers(self):
        node = parse_expr('up{job="api", instance=~"h.*"}')

        assert isinstance(node, VectorSelector)
        assert node.name == "up"
        assert [(m.name, m.op, m.value) for m in node.matchers] == [
            ("job", "=", "api"),
            ("instance", "=~", "h.*"),
        ]

    def test_range_selector_type(self):
        node = parse_expr("x[5m]")

        assert isinstance(node, MatrixSelector)
        assert node.type is ValueType.MATRIX

    def test_aggregation_grouping_either_side(self):
        before = parse_expr("sum by (job) (rate(x[5m]))")
        after = parse_expr("sum(rate(x[5m])) by (job)")

        assert isinstance(before, AggregateExpr)
        assert before.grouping == after.grouping == ["job"]

    def test_precedence(self):
        node = parse_expr("a + b * c")

        assert isinstance(node, BinaryExpr)
        assert node.op == "+"
        assert isinstance(node.rhs, BinaryExpr)
        assert node.rhs.op == "*"

    def test_power_is_right_associative(self):
        node = parse_expr("2 ^ 3 ^ 2")

        assert isinstance(node.rhs, BinaryExpr)

    @pytest.mark.parametrize(
        "expr",
        [
            "histogram_quantile(0.99, sum by (le) (rate(http_request_duration_seconds_bucket[5m])))",
            "topk(5, x)",
            "count_values(\"version\", build_info)",
            "x > bool 1",
            "a / on(job) group_left(team) b",
            "x offset 1h",
            "x @ 1700000000",
            "rate(x[5m] offset 1h)",
            "x[5m] @ 100 offset 1m",
            "x[1h:5m] offset 1m",
            "x offset 5m [1h:]",
            "max_over_time(rate(x[1m])[1h:5m])",
            "-x",
            "time()",
            "vector(1)",
            '{__name__="up"}',
            "1 + 2",
        ],
    )
    def test_valid_expressions(self, expr):
        parse_expr(expr)

    @pytest.mark.parametrize(
        "expr,message",
        [
            ("", "no expression found in input"),
            ("rate(x)", 'expected type range vector in call to function "rate", got instant vector'),
            ("nosuchfn(x)", 'unknown function with name "nosuchfn"'),
            ('{job=""}', "vector selector must contain at least one non-empty matcher"),
            ("1 > 2", "comparisons between scalars must use BOOL modifier"),
            ('up{job="a}', "unterminated quoted string"),
            ("sum(x", "unexpected end of input"),
            ("topk(x)", "wrong number of arguments for aggregate expression provided, expected 2, got 1"),
            ("x[5m][5m]", "ranges only allowed for vector selectors"),
            (
                "rate(x[5m]) offset 5m",
                "offset modifier must be preceded by an instant vector selector or range vector selector or a subquery",
            ),
            (
                "sum(x) @ 100",
                "@ modifier must be preceded by an instant vector selector or range vector selector or a subquery",
            ),
            ("(x) offset 5m", "offset modifier must be preceded by"),
            ("x offset 5m offset 1m", "offset may not be set multiple times"),
            ("x @ 1 @ 2", "@ <timestamp> may not be set multiple times"),
            ("x offset 5m [5m]", "no offset modifiers allowed before range"),
        ],
    )
    def test_invalid_expressions(self, expr, message):
        with pytest.raises(ParseError) as exc_info:
            parse_expr(expr)

        assert message in str(exc_info.value)
        assert ": parse error: " in str(exc_info.value)

    def test_error_position(self):
        with pytest.raises(ParseError) as exc_info:
            parse_expr("rate(x)")

        assert str(exc_info.value).startswith("1:6: parse error:")

    def test_walk_visits_every_selector(self):
        tree = parse_expr("a + on(job) sum(rate(b[5m]))")

        names = [n.name for n in walk(tree) if isinstance(n, VectorSelector)]

        assert names == ["a", "b"]


class TestExtractMetricNames:
    def test_names_in_first_seen_order(self):
        metrics, errors = extract_metric_names(["rate(b[5m]) / a", "a + c", "b"])

        assert metrics == ["b", "a", "c"]
        assert errors == ["", "", ""]

    def test_name_label_equality_matcher(self):
        metrics, _ = extract_metric_names(['{__name__="up", job="api"}'])

        assert metrics == ["up"]

    def test_name_label_regex_ignored(self):
        metrics, _ = extract_metric_names(['{__name__=~"node_.*", job="api"}'])

        assert metrics == []

    def test_grafana_variables_are_replaced(self):
        metrics, errors = extract_metric_names(['sum(rate(http_requests_total{job="$job"}[$__rate_interval]))'])

        assert metrics == ["http_requests_total"]
        assert errors == [""]

    def test_errors_by_index(self):
        metrics, errors = extract_metric_names(["up", "rate(", "node_load1"])

        assert metrics == ["up", "node_load1"]
        assert errors[0] == ""
        assert errors[1].startswith("1:")
        assert errors[2] == ""

    def test_no_expressions(self):
        assert extract_metric_names([]) == ([], [])

    def test_strip_macros(self):
        assert strip_grafana_macros("x[$__interval]") == "x[5m]"

    def test_deep_nesting_is_a_per_expression_error(self):
        deep = "(" * 3000 + "up" + ")" * 3000

        metrics, errors = extract_metric_names([deep, "node_load1"])

        assert metrics == ["node_load1"]
        assert "expression nested too deeply" in errors[0]
        assert errors[1] == ""

    def test_moderate_nesting_parses(self):
        metrics, errors = extract_metric_names(["(" * 50 + "up" + ")" * 50])

        assert metrics == ["up"]
        assert errors == [""]
