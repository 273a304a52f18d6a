"""Tests for dashboards/extractor.py and dashboards/models.py."""

import pytest
import respx
from httpx import Response

from paneldump.clients.grafana import GrafanaClient
from paneldump.core.errors import (
    DashboardInvalidError,
    DashboardNotFoundError,
    ExitCode,
    PanelNotFoundError,
)
from paneldump.dashboards.extractor import (
    extract_queries,
    fetch_dashboard,
    fetch_panel_info,
    panel_record_from_node,
)
from paneldump.dashboards.models import DatasourceRef, PanelRecord

GRAFANA = "https://grafana.example.com"


@pytest.fixture
def client():
    return GrafanaClient(GRAFANA, "test-token")


class TestDatasourceRef:
    def test_object_form(self):
        ref = DatasourceRef.from_raw({"uid": "prom-1", "type": "prometheus"})

        assert ref == DatasourceRef(uid="prom-1", type="prometheus")
        assert ref.resolved_uid == "prom-1"

    def test_legacy_string_form(self):
        ref = DatasourceRef.from_raw("prometheus-main")

        assert ref.legacy is True
        assert ref.uid == "prometheus-main"

    def test_template_reference_is_unresolved(self):
        ref = DatasourceRef.from_raw({"uid": "${DS_PROMETHEUS}"})

        assert ref.is_template is True
        assert ref.resolved_uid is None

    def test_absent_or_unexpected(self):
        assert DatasourceRef.from_raw(None) is None
        assert DatasourceRef.from_raw("") is None
        assert DatasourceRef.from_raw(42) is None


class TestFetchDashboard:
    @pytest.mark.asyncio
    async def test_returns_dashboard_object(self, client, dashboard_json):
        with respx.mock:
            route = respx.get(f"{GRAFANA}/api/dashboards/uid/d1").mock(
                return_value=Response(200, json=dashboard_json)
            )

            dashboard = await fetch_dashboard(client, "d1")

            assert dashboard["uid"] == "d1"
            assert route.calls.last.request.headers["Authorization"] == "Bearer test-token"

    @pytest.mark.asyncio
    async def test_404_is_dashboard_not_found(self, client):
        with respx.mock:
            respx.get(f"{GRAFANA}/api/dashboards/uid/missing").mock(
                return_value=Response(404, json={"message": "Dashboard not found"})
            )

            with pytest.raises(DashboardNotFoundError) as exc_info:
                await fetch_dashboard(client, "missing")

        assert exc_info.value.dashboard_uid == "missing"
        assert exc_info.value.exit_code == ExitCode.GRAFANA_ERROR

    @pytest.mark.asyncio
    async def test_unauthorized_is_dashboard_not_found(self, client):
        with respx.mock:
            respx.get(f"{GRAFANA}/api/dashboards/uid/d1").mock(return_value=Response(403))

            with pytest.raises(DashboardNotFoundError):
                await fetch_dashboard(client, "d1")

    @pytest.mark.asyncio
    async def test_missing_dashboard_field_is_invalid(self, client):
        with respx.mock:
            respx.get(f"{GRAFANA}/api/dashboards/uid/d1").mock(
                return_value=Response(200, json={"meta": {}})
            )

            with pytest.raises(DashboardInvalidError) as exc_info:
                await fetch_dashboard(client, "d1")

        assert exc_info.value.message == "Dashboard not found or invalid response shape"

    @pytest.mark.asyncio
    async def test_non_object_dashboard_is_invalid(self, client):
        with respx.mock:
            respx.get(f"{GRAFANA}/api/dashboards/uid/d1").mock(
                return_value=Response(200, json={"dashboard": ["not", "an", "object"]})
            )

            with pytest.raises(DashboardInvalidError):
                await fetch_dashboard(client, "d1")


class TestFetchPanelInfo:
    @pytest.mark.asyncio
    async def test_nested_panel(self, client, dashboard_json):
        with respx.mock:
            respx.get(f"{GRAFANA}/api/dashboards/uid/d1").mock(
                return_value=Response(200, json=dashboard_json)
            )

            panel = await fetch_panel_info(client, "d1", 42)

        assert panel.id == 42
        assert panel.dashboard_uid == "d1"
        assert panel.title == "CPU"
        assert panel.type == "timeseries"
        assert panel.datasource.uid == "prom-1"
        assert len(panel.targets) == 2

    @pytest.mark.asyncio
    async def test_unknown_panel(self, client, dashboard_json):
        with respx.mock:
            respx.get(f"{GRAFANA}/api/dashboards/uid/d1").mock(
                return_value=Response(200, json=dashboard_json)
            )

            with pytest.raises(PanelNotFoundError) as exc_info:
                await fetch_panel_info(client, "d1", 7)

        assert str(exc_info.value) == "Panel 7 not found in dashboard d1"

    def test_node_without_targets(self):
        panel = panel_record_from_node({"id": 3, "type": "text"}, "d1", 3)

        assert panel.targets == []
        assert panel.title is None
        assert panel.datasource is None


class TestExtractQueries:
    def _panel(self, targets):
        return PanelRecord(id=1, dashboard_uid="d1", targets=targets)

    def test_expressions_in_target_order(self):
        queries = extract_queries(self._panel([{"expr": "up"}, {"expr": "rate(x[5m])"}]))

        assert [q.expr for q in queries] == ["up", "rate(x[5m])"]
        assert [q.index for q in queries] == [0, 1]
        assert all(q.ok for q in queries)

    def test_query_field_fallback(self):
        queries = extract_queries(self._panel([{"query": "SELECT 1"}]))

        assert queries[0].expr == "SELECT 1"

    def test_missing_expression_is_a_fault_not_an_abort(self):
        queries = extract_queries(self._panel([{"refId": "A"}, {"expr": "up"}]))

        assert len(queries) == 2
        assert queries[0].ok is False
        assert queries[0].expr == ""
        assert queries[0].fault == "target has no expression field"
        assert queries[1].expr == "up"

    def test_non_string_expression(self):
        queries = extract_queries(self._panel([{"expr": 12}]))

        assert queries[0].fault == "target field 'expr' is not a string"

    def test_non_object_target(self):
        queries = extract_queries(self._panel(["up"]))

        assert queries[0].fault == "target is not an object"

    def test_empty_string_expression_is_kept(self):
        queries = extract_queries(self._panel([{"expr": ""}]))

        assert queries[0].ok is True
        assert queries[0].expr == ""

    def test_no_targets(self):
        assert extract_queries(self._panel([])) == []
