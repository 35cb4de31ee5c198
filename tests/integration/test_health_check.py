import pytest

pytestmark = pytest.mark.integration


class TestHealthCheck:
    def test_health_check_returns_200(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert set(data["services"]) == {"database", "cache"}

    def test_health_check_reports_database_status(self, client):
        data = client.get("/health").json()
        assert data["services"]["database"]["status"] == "up"
        assert "response_time_ms" in data["services"]["database"]

    def test_failing_dependency_returns_503(self, client, monkeypatch):
        from modules.core import views

        def broken():
            raise ConnectionError("cache down")

        monkeypatch.setitem(views.PROBES, "cache", broken)
        response = client.get("/health")
        assert response.status_code == 503
        assert response.json()["services"]["cache"] == {"status": "down"}
