"""
Tests for the HTTP API

The analysis service is replaced through dependency_overrides, so no store
or Jira connection is needed.
"""
import hashlib
import hmac
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from ticket_dedup.config import Settings
from ticket_dedup.dependencies import get_analysis_service
from ticket_dedup.exceptions import TicketRepositoryError
from ticket_dedup.main import app
from ticket_dedup.models.schemas import (
    AnalysisResponse,
    LiveTicket,
    PersistedTicket,
    SearchResponse,
    SimilarityResult,
    SyncResult,
)
from ticket_dedup.routes import analysis as analysis_routes
from ticket_dedup.routes import health as health_routes

client = TestClient(app)

CREATED_EVENT = {"webhookEvent": "jira:issue_created", "issue": {"key": "BUG-301", "fields": {}}}


@pytest.fixture
def mock_service():
    """Analysis service with mocked source and store"""
    service = MagicMock()
    service.analyze_ticket = AsyncMock()
    service.process_webhook = AsyncMock()
    service.sync_historical_data = AsyncMock(return_value=SyncResult(success=True))
    service.search_tickets = AsyncMock()
    service.refresh_ticket = AsyncMock(return_value=None)
    service.store = AsyncMock()
    service.store.get_by_key.return_value = None
    service.store.count.return_value = 0
    service.source = AsyncMock()
    service.source.ping.return_value = True
    service.settings = Settings(_env_file=None, jira_target_projects="BUG, WEB")

    app.dependency_overrides[get_analysis_service] = lambda: service
    analysis_routes.sync_state["historical_sync_in_progress"] = False
    health_routes._dependency_cache = None
    yield service
    app.dependency_overrides.clear()
    analysis_routes.sync_state["historical_sync_in_progress"] = False
    health_routes._dependency_cache = None


class TestAnalyzeEndpoint:
    """Test POST /api/v1/analysis/analyze"""

    def test_analyze(self, mock_service):
        mock_service.analyze_ticket.return_value = AnalysisResponse(
            success=True,
            message="Analysis completed. Found 1 similar tickets.",
            similar_tickets=[SimilarityResult(ticket_key="BUG-201", similarity_score=0.687)],
            total_matches=1,
        )

        response = client.post("/api/v1/analysis/analyze", json={
            "title": "Login button unresponsive on mobile",
            "project_key": "BUG",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["total_matches"] == 1
        assert data["similar_tickets"][0]["ticket_key"] == "BUG-201"
        request = mock_service.analyze_ticket.call_args[0][0]
        assert request.project_key == "BUG"
        assert request.minimum_similarity_threshold == 0.3

    @pytest.mark.parametrize("payload", [{"title": ""}, {"title": "   "}])
    def test_empty_title_is_bad_request(self, mock_service, payload):
        response = client.post("/api/v1/analysis/analyze", json=payload)

        assert response.status_code == 400
        assert response.json()["detail"] == "Title is required for analysis"
        mock_service.analyze_ticket.assert_not_awaited()

    def test_missing_title_is_bad_request(self, mock_service):
        response = client.post("/api/v1/analysis/analyze", json={"description": "no title"})
        assert response.status_code == 400

    def test_analysis_failure_is_server_error(self, mock_service):
        mock_service.analyze_ticket.return_value = AnalysisResponse(
            success=False, message="Error during analysis: db down"
        )

        response = client.post("/api/v1/analysis/analyze", json={"title": "Crash on save"})

        assert response.status_code == 500


class TestWebhookEndpoint:
    """Test POST /api/v1/analysis/webhook/jira"""

    def test_accepts_and_processes_in_background(self, mock_service):
        response = client.post("/api/v1/analysis/webhook/jira", json=CREATED_EVENT)

        assert response.status_code == 202
        assert response.json()["ticket_key"] == "BUG-301"
        event = mock_service.process_webhook.call_args[0][0]
        assert event.is_ticket_created
        assert event.ticket_key == "BUG-301"

    def test_valid_signature(self, mock_service):
        body = json.dumps(CREATED_EVENT).encode()
        signature = hmac.new(b"s3cret", body, hashlib.sha256).hexdigest()

        with patch("ticket_dedup.utils.auth.get_settings",
                   return_value=Settings(jira_webhook_secret="s3cret")):
            response = client.post(
                "/api/v1/analysis/webhook/jira",
                content=body,
                headers={"Content-Type": "application/json", "X-Hub-Signature": f"sha256={signature}"},
            )

        assert response.status_code == 202

    def test_invalid_signature_rejected(self, mock_service):
        with patch("ticket_dedup.utils.auth.get_settings",
                   return_value=Settings(jira_webhook_secret="s3cret")):
            response = client.post(
                "/api/v1/analysis/webhook/jira",
                json=CREATED_EVENT,
                headers={"X-Hub-Signature": "sha256=deadbeef"},
            )

        assert response.status_code == 401
        mock_service.process_webhook.assert_not_awaited()

    def test_validation_disabled(self, mock_service):
        settings = Settings(jira_webhook_secret="s3cret", jira_enable_webhook_validation=False)
        with patch("ticket_dedup.utils.auth.get_settings", return_value=settings):
            response = client.post("/api/v1/analysis/webhook/jira", json=CREATED_EVENT)

        assert response.status_code == 202


class TestSyncEndpoint:
    """Test POST /api/v1/analysis/sync-historical"""

    def test_starts_sync(self, mock_service):
        response = client.post("/api/v1/analysis/sync-historical")

        assert response.status_code == 202
        mock_service.sync_historical_data.assert_awaited_once()
        assert analysis_routes.sync_state["historical_sync_in_progress"] is False

    def test_conflict_while_running(self, mock_service):
        analysis_routes.sync_state["historical_sync_in_progress"] = True

        response = client.post("/api/v1/analysis/sync-historical")

        assert response.status_code == 409
        mock_service.sync_historical_data.assert_not_awaited()

    def test_sync_failure_clears_flag(self, mock_service):
        mock_service.sync_historical_data.side_effect = RuntimeError("boom")

        response = client.post("/api/v1/analysis/sync-historical")

        assert response.status_code == 202
        assert analysis_routes.sync_state["historical_sync_in_progress"] is False

    @pytest.mark.asyncio
    async def test_scheduled_sync_skipped_while_manual_sync_runs(self, mock_service):
        analysis_routes.sync_state["historical_sync_in_progress"] = True

        result = await analysis_routes.run_scheduled_sync(mock_service)

        assert result is None
        mock_service.sync_historical_data.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_scheduled_sync_holds_flag_while_running(self, mock_service):
        async def check_flag_mid_sync():
            assert analysis_routes.sync_state["historical_sync_in_progress"] is True
            return SyncResult(success=True)

        mock_service.sync_historical_data.side_effect = check_flag_mid_sync

        result = await analysis_routes.run_scheduled_sync(mock_service)

        assert result.success is True
        assert analysis_routes.sync_state["last_result"] is result
        assert analysis_routes.sync_state["historical_sync_in_progress"] is False

    @pytest.mark.asyncio
    async def test_scheduled_sync_failure_clears_flag(self, mock_service):
        mock_service.sync_historical_data.side_effect = RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await analysis_routes.run_scheduled_sync(mock_service)

        assert analysis_routes.sync_state["historical_sync_in_progress"] is False


class TestTicketEndpoints:
    """Test /api/v1/tickets"""

    def test_list_by_project(self, mock_service, ticket_factory):
        mock_service.store.get_by_project.return_value = [ticket_factory("BUG-1", project="BUG")]
        mock_service.store.count.return_value = 7

        response = client.get("/api/v1/tickets/", params={"project": "BUG", "offset": 0, "limit": 5})

        assert response.status_code == 200
        assert [t["ticket_key"] for t in response.json()] == ["BUG-1"]
        assert response.headers["X-Total-Count"] == "7"
        mock_service.store.get_by_project.assert_awaited_once_with("BUG", 0, 5)

    def test_list_all(self, mock_service):
        mock_service.store.get_all.return_value = []

        response = client.get("/api/v1/tickets/")

        assert response.status_code == 200
        mock_service.store.get_all.assert_awaited_once_with(0, 20)

    def test_statistics(self, mock_service):
        mock_service.store.count.return_value = 42

        response = client.get("/api/v1/tickets/statistics")

        assert response.status_code == 200
        assert response.json()["total_tickets"] == 42
        assert response.json()["sync_running"] is False
        assert response.json()["tracked_projects"] == ["BUG", "WEB"]

    def test_search(self, mock_service, ticket_factory):
        mock_service.search_tickets.return_value = SearchResponse(
            query="login",
            results=[
                PersistedTicket(ticket=ticket_factory("BUG-1")),
                LiveTicket(ticket=ticket_factory("BUG-2")),
            ],
            total=2,
            persisted_count=1,
            live_count=1,
        )

        response = client.get("/api/v1/tickets/search", params={"q": "login", "include_live": "false"})

        assert response.status_code == 200
        data = response.json()
        assert [hit["source"] for hit in data["results"]] == ["persisted", "live"]
        mock_service.search_tickets.assert_awaited_once_with(
            "login", 0, 20, False, live_only=False, save_live=False
        )

    def test_search_live_only_and_save(self, mock_service):
        mock_service.search_tickets.return_value = SearchResponse(query="crash", saved_count=3)

        response = client.get("/api/v1/tickets/search", params={
            "q": "crash",
            "live_only": "true",
            "save_live": "true",
        })

        assert response.status_code == 200
        assert response.json()["saved_count"] == 3
        mock_service.search_tickets.assert_awaited_once_with(
            "crash", 0, 20, True, live_only=True, save_live=True
        )

    def test_search_requires_term(self, mock_service):
        assert client.get("/api/v1/tickets/search").status_code == 422

    def test_get_ticket(self, mock_service, ticket_factory):
        mock_service.store.get_by_key.return_value = ticket_factory("BUG-1", title="Crash")

        response = client.get("/api/v1/tickets/BUG-1")

        assert response.status_code == 200
        assert response.json()["title"] == "Crash"
        assert "similarity_score" not in response.json()

    def test_get_ticket_not_found(self, mock_service):
        response = client.get("/api/v1/tickets/NOPE-1")

        assert response.status_code == 404
        assert response.json()["detail"] == "Ticket NOPE-1 not found"

    def test_refresh(self, mock_service, ticket_factory):
        mock_service.refresh_ticket.return_value = ticket_factory("BUG-1")

        response = client.post("/api/v1/tickets/BUG-1/refresh")

        assert response.status_code == 200
        mock_service.refresh_ticket.assert_awaited_once_with("BUG-1")

    def test_refresh_not_in_jira(self, mock_service):
        response = client.post("/api/v1/tickets/NOPE-1/refresh")

        assert response.status_code == 404
        assert response.json()["detail"] == "Ticket NOPE-1 not found in Jira"

    def test_store_failure_is_service_unavailable(self, mock_service):
        mock_service.store.get_by_key.side_effect = TicketRepositoryError("get_by_key(BUG-1)", Exception("down"))

        response = client.get("/api/v1/tickets/BUG-1")

        assert response.status_code == 503


class TestHealthEndpoints:
    """Test /api/v1/health"""

    def test_basic_health(self):
        response = client.get("/api/v1/health/")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert data["uptime_seconds"] >= 0

    def test_dependencies_healthy(self, mock_service):
        response = client.get("/api/v1/health/dependencies")

        data = response.json()
        assert data["overall_status"] == "healthy"
        assert set(data["dependencies"]) == {"ticket_store", "jira"}

    def test_jira_down_is_degraded(self, mock_service):
        mock_service.source.ping.return_value = False

        data = client.get("/api/v1/health/dependencies").json()

        assert data["overall_status"] == "degraded"
        assert data["dependencies"]["jira"]["status"] == "degraded"

    def test_store_down_is_unhealthy(self, mock_service):
        mock_service.store.count.side_effect = TicketRepositoryError("count", Exception("down"))

        data = client.get("/api/v1/health/dependencies").json()

        assert data["overall_status"] == "unhealthy"

    def test_results_cached(self, mock_service):
        client.get("/api/v1/health/dependencies")
        client.get("/api/v1/health/dependencies")

        assert mock_service.source.ping.await_count == 1


class TestMiddleware:
    """Test request logging middleware"""

    def test_request_headers_added(self, mock_service):
        response = client.get("/api/v1/tickets/NOPE-1", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"
        assert "X-Process-Time" in response.headers

    def test_health_not_instrumented(self):
        response = client.get("/api/v1/health/")
        assert "X-Request-ID" not in response.headers

    def test_root(self):
        assert client.get("/").json()["message"] == "Related Ticket Finder API"
