"""Tests for queries/results.py."""

import math

from paneldump.queries.results import Field, Frame, QueryResult


class TestField:
    def test_display_name_preference(self):
        assert Field(name="value").display_name == "value"
        assert Field(name="value", config={"displayName": "CPU"}).display_name == "CPU"
        assert (
            Field(name="value", config={"displayName": "CPU", "displayNameFromDS": "cpu_ds"}).display_name
            == "cpu_ds"
        )

    def test_permissive_decoding(self):
        field = Field.from_api_response({"name": "v", "labels": "junk", "config": None})

        assert field.labels == {}
        assert field.config == {}
        assert Field.from_api_response("junk").name == ""


class TestFrame:
    def test_decode(self, make_frame):
        frame = Frame.from_api_response(make_frame([1, 2], [10, 20], {"host": "a"}))

        assert [f.type for f in frame.fields] == ["time", "number"]
        assert frame.first_index_of_type("number") == 1
        assert frame.first_index_of_type("string") is None
        assert frame.column(0) == [10, 20]
        assert frame.column(5) is None

    def test_entities_restore_special_floats(self, make_frame):
        raw = make_frame([None, None, None, 4], [1, 2, 3, 4])
        raw["data"]["entities"] = [None, {"NaN": [0], "Inf": [1], "NegInf": [2]}]

        frame = Frame.from_api_response(raw)

        values = frame.column(1)
        assert math.isnan(values[0])
        assert values[1] == math.inf
        assert values[2] == -math.inf
        assert values[3] == 4

    def test_missing_schema_and_data(self):
        frame = Frame.from_api_response({})

        assert frame.fields == []
        assert frame.values == []


class TestQueryResult:
    def test_groups_in_response_order(self, query_response):
        result = QueryResult.from_api_response(query_response)

        assert list(result.groups) == ["A", "B"]
        assert len(result.groups["A"].frames) == 1
        assert result.errors == {}

    def test_group_errors(self):
        result = QueryResult.from_api_response(
            {"results": {"A": {"status": 400, "error": "bad query", "frames": []}}}
        )

        assert result.errors == {"A": "bad query"}
        assert result.groups["A"].status == 400

    def test_no_results(self):
        assert QueryResult.from_api_response({}).groups == {}
        assert QueryResult.from_api_response(None).groups == {}
