"""
HTTP API tests using FastAPI's TestClient with an isolated store.
"""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from api.main import app, create_app
from api.routes import get_settings, get_store
from models.schemas import CompetitorInsight, InsightRecord, InsightSource


@pytest.fixture
def client(config, store):
    app.dependency_overrides[get_settings] = lambda: config
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def _record():
    return InsightRecord(
        overall_sentiment=0.25,
        key_insights=["Steady quarter"],
        competitor_analysis={"Apple": CompetitorInsight(sentiment=0.25, trend="stable")},
        recommendations=[],
        data_sources_used=["quote"],
        source=InsightSource.MODEL,
    )


class TestInsightsAPI:
    def test_health(self, client):
        resp = client.get("/api/v1/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["sources_configured"] == {"quote": True, "news": True, "social": True}
        assert body["analysis_configured"] is False

    def test_unknown_date_is_404(self, client):
        assert client.get("/api/v1/insights/2024-01-01").status_code == 404

    def test_latest_is_404_when_empty(self, client):
        assert client.get("/api/v1/insights/latest").status_code == 404

    def test_stored_record_is_served(self, client, store):
        store.upsert(date(2024, 2, 1), _record())

        resp = client.get("/api/v1/insights/2024-02-01")
        assert resp.status_code == 200
        body = resp.json()
        assert body["run_date"] == "2024-02-01"
        assert body["overall_sentiment"] == 0.25
        assert body["competitor_analysis"]["Apple"]["trend"] == "stable"
        assert body["source"] == "model"

        latest = client.get("/api/v1/insights/latest").json()
        assert latest["run_date"] == "2024-02-01"

    def test_bad_date_is_422(self, client):
        assert client.get("/api/v1/insights/yesterday").status_code == 422

    def test_trigger_demo_run(self, client, store):
        resp = client.post("/api/v1/pipeline/run", params={"demo": True})
        assert resp.status_code == 202
        assert resp.json()["status"] == "accepted"
        # background task runs before TestClient returns
        assert store.count() == 1
        assert client.get("/api/v1/insights/latest").json()["source"] == "fallback"


class TestAppFactory:
    def test_root_reports_configured_name(self, config, store):
        named = config.model_copy(update={"APP_NAME": "Insights Staging", "APP_VERSION": "9.9.9"})
        app = create_app(named)
        app.dependency_overrides[get_store] = lambda: store

        body = TestClient(app).get("/").json()
        assert body["name"] == "Insights Staging"
        assert body["version"] == "9.9.9"

    def test_health_uses_factory_settings(self, config, store):
        keyed = config.model_copy(update={"ANALYSIS_API_KEY": "sk-test"})
        app = create_app(keyed)
        app.dependency_overrides[get_store] = lambda: store

        with TestClient(app) as client:
            body = client.get("/api/v1/health").json()
        assert body["analysis_configured"] is True
