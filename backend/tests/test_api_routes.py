"""
API Route Tests

Request parsing, response shapes and the error envelope for the analytics
and AI blueprints. The dataset is injected through create_app(store=...), so
nothing here touches the network.
"""
import json

import pytest
from unittest.mock import MagicMock, Mock

from app import create_app
from config import Config
from services.dashboard_service import DatasetStore, set_dataset_store
from services.data_source import DataSourceConnectionError, DataSourceHTTPError


@pytest.fixture
def failing_client():
    """App whose data source answers 503."""
    store = DatasetStore(
        loader=Mock(side_effect=DataSourceHTTPError("Data source returned HTTP 503", status_code=503))
    )
    app = create_app(store=store)
    app.config['TESTING'] = True
    yield app.test_client()
    set_dataset_store(None)


# =============================================================================
# DASHBOARD
# =============================================================================

class TestDashboardRoute:

    def test_query_filters(self, client):
        r = client.get("/api/dashboard?propertyType=Terrace&granularity=year")
        assert r.status_code == 200

        data = r.get_json()
        assert data["meta"]["total_records_matched"] == 3
        assert data["meta"]["filters_applied"]["granularity"] == "year"
        periods = [b["period"] for b in data["data"]["charts"]["time_series"]]
        assert periods == ["2024", "2025"]

    def test_repeated_query_keys(self, client):
        r = client.get("/api/dashboard?tenure=Freehold&tenure=999%20yrs")
        assert r.get_json()["meta"]["total_records_matched"] == 4

    def test_comma_separated_query_value(self, client):
        r = client.get("/api/dashboard?tenure=Freehold,999%20yrs")
        assert r.get_json()["meta"]["total_records_matched"] == 4

    def test_post_grouped_body(self, client):
        r = client.post("/api/dashboard", json={
            "filters": {"propertyType": ["Terrace"], "startDate": "2025-01-01"},
            "options": {"kpiVariant": "basic"},
            "panels": ["kpis"],
        })
        assert r.status_code == 200

        data = r.get_json()
        assert list(data["data"]) == ["kpis"]
        assert data["meta"]["total_records_matched"] == 2
        assert "median_price_psf" in data["data"]["kpis"]["snapshot"]

    def test_post_flat_body(self, client):
        r = client.post("/api/dashboard", json={"streetName": "Kew Drive", "panels": "kpis"})
        snapshot = r.get_json()["data"]["kpis"]["snapshot"]
        assert snapshot["total_transactions"] == 1
        assert snapshot["highest_transaction"] == 6_000_000.0

    def test_cache_hit_on_repeat(self, client):
        client.get("/api/dashboard?tenure=Freehold")
        r = client.get("/api/dashboard?tenure=Freehold")
        assert r.get_json()["meta"]["cache_hit"] is True

        r = client.get("/api/dashboard?tenure=Freehold&skip_cache=true")
        assert r.get_json()["meta"]["cache_hit"] is False

    def test_no_matches_is_not_an_error(self, client):
        r = client.get("/api/dashboard?startDate=2030-01-01")
        assert r.status_code == 200
        data = r.get_json()
        assert data["data"]["kpis"]["snapshot"]["total_transactions"] == 0
        assert data["data"]["comparison"]["anchor_date"] is None

    def test_cache_endpoint(self, client):
        client.get("/api/dashboard")
        assert client.get("/api/dashboard/cache").get_json()["size"] >= 1

        r = client.delete("/api/dashboard/cache")
        assert r.get_json()["status"] == "cache cleared"
        assert client.get("/api/dashboard/cache").get_json()["size"] == 0


class TestPanelRoutes:

    def test_kpi_summary_cards(self, client):
        data = client.get("/api/kpi-summary").get_json()
        ids = [c["kpi_id"] for c in data["cards"]]
        assert ids[0] == "total_transactions"
        assert data["meta"]["version"] == 1

    def test_comparison(self, client):
        data = client.get("/api/comparison").get_json()
        assert data["anchor_date"].startswith("2025-09-22")
        month = data["comparisons"][0]
        assert month["trends"]["total_transactions"] == 100.0

    def test_charts_options(self, client):
        data = client.get("/api/charts?granularity=quarter&categoryField=tenure").get_json()
        assert data["category_field"] == "tenure"
        assert [b["period"] for b in data["time_series"]] == [
            "2024-Q4", "2025-Q1", "2025-Q2", "2025-Q3",
        ]

    def test_filter_options(self, client):
        data = client.get("/api/filter-options").get_json()
        assert data["tenures"] == ["99 yrs", "999 yrs", "Freehold"]
        assert data["date_range"] == {"min": "2024-11-20", "max": "2025-09-22"}


class TestTransactionsRoute:

    def test_sort_and_paginate(self, client):
        r = client.get("/api/transactions?sort=unit_price_psf&order=asc&limit=2&page=2")
        assert r.status_code == 200

        data = r.get_json()
        assert [t["unit_price_psf"] for t in data["transactions"]] == [1400.0, 1500.0]
        assert data["pagination"]["total_pages"] == 3
        assert data["pagination"]["has_prev"] is True

    def test_filtered(self, client):
        data = client.get("/api/transactions?propertyType=Detached%20House").get_json()
        assert data["pagination"]["total_records"] == 1
        assert data["transactions"][0]["street_name"] == "Kew Drive"


class TestAdminRoutes:

    def test_health_reports_loaded_store(self, client):
        data = client.get("/api/health").get_json()
        assert data["status"] == "healthy"
        assert data["data_loaded"] is True
        assert data["row_count"] == 5

    def test_health_does_not_force_load(self):
        loader = Mock()
        app = create_app(store=DatasetStore(loader=loader))
        try:
            data = app.test_client().get("/api/health").get_json()
        finally:
            set_dataset_store(None)

        assert data["status"] == "starting"
        loader.assert_not_called()

    def test_refresh(self, client):
        r = client.post("/api/refresh")
        assert r.status_code == 200
        data = r.get_json()
        assert data["status"] == "refreshed"
        assert data["version"] == 2
        assert data["load"]["rows"] == 5


# =============================================================================
# ERRORS
# =============================================================================

class TestErrorEnvelope:

    def test_invalid_date_is_400(self, client):
        r = client.get("/api/dashboard?startDate=01-09-2025")
        assert r.status_code == 400
        data = r.get_json()
        assert data["type"] == "validation_error"
        assert "field" in data

    def test_invalid_enum_is_400(self, client):
        r = client.get("/api/charts?granularity=weekly")
        assert r.status_code == 400
        assert r.get_json()["type"] == "validation_error"

    def test_invalid_panel_is_400(self, client):
        r = client.get("/api/dashboard?panels=heatmap")
        assert r.status_code == 400
        assert r.get_json()["field"] == "panels"

    def test_invalid_limit_is_400(self, client):
        r = client.get("/api/transactions?limit=abc")
        assert r.status_code == 400
        assert r.get_json()["field"] == "limit"

    def test_limit_out_of_range_is_400(self, client):
        r = client.get("/api/transactions?limit=1000")
        assert r.status_code == 400
        assert r.get_json()["field"] == "limit"

    def test_invalid_sort_is_400(self, client):
        r = client.get("/api/transactions?sort=district")
        assert r.status_code == 400
        assert r.get_json()["field"] == "sort"

    def test_non_object_body_is_400(self, client):
        r = client.post("/api/dashboard", data=json.dumps([1, 2]),
                        content_type="application/json")
        assert r.status_code == 400
        assert r.get_json()["field"] == "body"

    def test_non_object_filters_group_is_400(self, client):
        r = client.post("/api/dashboard", json={"filters": ["Terrace"]})
        assert r.status_code == 400
        assert r.get_json()["field"] == "filters"

    def test_body_street_with_comma_kept_whole(self, client):
        r = client.post("/api/dashboard", json={"filters": {"streetName": ["Jalan Bilal, Kew"]}})
        assert r.status_code == 200
        meta = r.get_json()["meta"]
        assert meta["total_records_matched"] == 0
        assert meta["filters_applied"]["streetNames"] == ["Jalan Bilal, Kew"]

    def test_data_source_failure_is_502(self, failing_client):
        r = failing_client.get("/api/dashboard")
        assert r.status_code == 502

        error = r.get_json()["error"]
        assert error["code"] == "DATA_SOURCE_UNAVAILABLE"
        assert error["details"] == {"upstreamStatus": 503}
        assert error["requestId"]

    def test_connection_failure_is_502(self):
        store = DatasetStore(loader=Mock(side_effect=DataSourceConnectionError("timed out")))
        app = create_app(store=store)
        try:
            r = app.test_client().get("/api/kpi-summary")
        finally:
            set_dataset_store(None)

        assert r.status_code == 502
        assert "details" not in r.get_json()["error"]

    def test_health_survives_data_source_failure(self, failing_client):
        r = failing_client.get("/api/health")
        assert r.status_code == 200
        assert r.get_json()["data_loaded"] is False

    def test_unknown_route_is_404(self, client):
        r = client.get("/api/heatmap")
        assert r.status_code == 404
        assert r.get_json()["error"]["code"] == "NOT_FOUND"

    def test_wrong_method_is_405(self, client):
        r = client.get("/api/refresh")
        assert r.status_code == 405


class TestRequestMiddleware:

    def test_request_id_echoed(self, client):
        r = client.get("/api/ping", headers={"X-Request-ID": "abc-123"})
        assert r.headers["X-Request-ID"] == "abc-123"
        assert "X-Response-Time-Ms" in r.headers

    def test_request_id_generated(self, client):
        r = client.get("/api/ping")
        assert len(r.headers["X-Request-ID"]) == 36

    def test_cors_allows_any_origin(self, client):
        r = client.get("/api/ping", headers={"Origin": "https://dashboard.example.com"})
        assert r.headers["Access-Control-Allow-Origin"] == "*"


# =============================================================================
# AI SUMMARY
# =============================================================================

def _sse_events(response):
    events = []
    for line in response.get_data(as_text=True).splitlines():
        if line.startswith("data: "):
            events.append(json.loads(line[len("data: "):]))
    return events


class TestAISummaryRoute:

    def test_not_configured_is_503(self, client, monkeypatch):
        monkeypatch.setattr(Config, "ANTHROPIC_API_KEY", None)

        r = client.post("/api/ai/summary", json={"propertyType": ["Terrace"]})

        assert r.status_code == 503
        assert r.get_json()["error"]["code"] == "AI_NOT_CONFIGURED"

    def test_ai_health_unconfigured(self, client, monkeypatch):
        monkeypatch.setattr(Config, "ANTHROPIC_API_KEY", None)
        data = client.get("/api/ai/health").get_json()
        assert data == {"status": "unconfigured", "api_key_configured": False, "model": None}

    def test_streams_summary(self, store):
        from services.ai_service import AIService, set_ai_service

        anthropic_client = MagicMock()
        stream = anthropic_client.messages.stream.return_value.__enter__.return_value
        stream.text_stream = iter(["Terrace sales ", "doubled month on month."])

        app = create_app(store=store, ai_service=AIService(client=anthropic_client))
        try:
            r = app.test_client().post("/api/ai/summary", json={"propertyType": "Terrace"})
            events = _sse_events(r)
        finally:
            set_dataset_store(None)
            set_ai_service(None)

        assert r.status_code == 200
        assert r.mimetype == "text/event-stream"
        assert r.headers["Cache-Control"] == "no-cache"
        assert [e["type"] for e in events] == ["meta", "token", "token", "done"]
        assert events[0]["version"] == 1
        assert "".join(e["content"] for e in events if e["type"] == "token") == \
            "Terrace sales doubled month on month."

        prompt = anthropic_client.messages.stream.call_args.kwargs["messages"][0]["content"]
        assert "propertyTypes=['Terrace']" in prompt

    def test_bad_params_rejected_before_streaming(self, client):
        r = client.post("/api/ai/summary", json={"startDate": "yesterday"})
        assert r.status_code == 400
