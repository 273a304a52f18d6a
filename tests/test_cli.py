"""Tests for the paneldump command line."""

import json

import pytest
import respx
from httpx import Response

from paneldump.cli.export import export_command, queries_command
from paneldump.cli.main import build_parser, main
from paneldump.cli.parse import parse_command
from paneldump.core.errors import ExitCode

GRAFANA = "https://grafana.example.com"
TIMERANGE = '{"from": "now-1h", "to": "now"}'


@pytest.fixture
def grafana_env(monkeypatch, tmp_path):
    monkeypatch.setenv("PANELDUMP_GRAFANA_URL", GRAFANA)
    monkeypatch.setenv("PANELDUMP_OUTPUT_DIR", str(tmp_path))
    return tmp_path


class TestBuildParser:
    def test_export_arguments(self):
        args = build_parser().parse_args(
            ["export", "--dashboard", "d1", "--panel", "42", "--timerange", TIMERANGE, "--output-dir", "out"]
        )

        assert args.command == "export"
        assert args.dashboard == "d1"
        assert args.panel == "42"
        assert args.output_dir == "out"
        assert args.datasource is None

    def test_serve_defaults(self):
        args = build_parser().parse_args(["serve"])

        assert args.host == "127.0.0.1"
        assert args.port == 8000


class TestParseCommand:
    def test_prints_response(self, capsys):
        code = parse_command(["up", "rate(x[5m])"])

        body = json.loads(capsys.readouterr().out)
        assert code == ExitCode.SUCCESS
        assert body["metrics"] == ["up", "x"]

    def test_parse_error_is_a_warning(self, capsys):
        assert parse_command(["rate("]) == ExitCode.WARNING

    def test_main_exits_with_command_code(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["parse", "up"])

        assert exc_info.value.code == 0
        assert json.loads(capsys.readouterr().out)["metrics"] == ["up"]

    def test_main_without_command(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 1


class TestExportCommand:
    def test_missing_parameter(self, grafana_env):
        assert export_command("d1", None, TIMERANGE) == ExitCode.CONFIG_ERROR

    def test_writes_file(self, grafana_env, dashboard_json, query_response):
        with respx.mock:
            respx.get(f"{GRAFANA}/api/dashboards/uid/d1").mock(
                return_value=Response(200, json=dashboard_json)
            )
            respx.post(f"{GRAFANA}/api/ds/query").mock(return_value=Response(200, json=query_response))

            code = export_command("d1", "42", TIMERANGE)

        assert code == ExitCode.SUCCESS
        assert len((grafana_env / "CPU.prom").read_text().splitlines()) == 6

    def test_unknown_dashboard(self, grafana_env):
        with respx.mock:
            respx.get(f"{GRAFANA}/api/dashboards/uid/nope").mock(return_value=Response(404))

            assert export_command("nope", "42", TIMERANGE) == ExitCode.GRAFANA_ERROR

    def test_queries_command(self, grafana_env, dashboard_json):
        with respx.mock:
            respx.get(f"{GRAFANA}/api/dashboards/uid/d1").mock(
                return_value=Response(200, json=dashboard_json)
            )

            assert queries_command("d1", "42") == ExitCode.SUCCESS

    def test_blank_grafana_url(self, monkeypatch):
        monkeypatch.setenv("PANELDUMP_GRAFANA_URL", " ")

        assert export_command("d1", "42", TIMERANGE) == ExitCode.CONFIG_ERROR
