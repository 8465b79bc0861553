"""
Tests for the Supabase connection helpers and the health endpoint.
"""

from unittest.mock import patch

import pytest

from config import database
from config.database import ConnectionError, check_connection, get_supabase_client, reset_connection


@pytest.fixture
def fresh_client_cache():
    get_supabase_client.cache_clear()
    yield
    get_supabase_client.cache_clear()


class TestCheckConnection:

    def test_healthy(self, mock_supabase):
        mock_supabase.set_table_data("clientes", [{"id": "c1"}, {"id": "c2"}])

        with patch("config.database.get_supabase_client", return_value=mock_supabase):
            status = check_connection()

        assert status == {"status": "healthy", "clients_count": 2, "import_jobs_count": 0}

    def test_unhealthy(self, mock_supabase):
        mock_supabase.fail_on("clientes", "select")

        with patch("config.database.get_supabase_client", return_value=mock_supabase):
            status = check_connection()

        assert status["status"] == "unhealthy"
        assert "connection reset" in status["error"]


class TestClientCache:

    def test_client_cached_until_reset(self, mock_supabase, fresh_client_cache):
        with patch.object(database, "create_client", return_value=mock_supabase) as create:
            first = get_supabase_client()
            second = get_supabase_client()
            reset_connection()
            get_supabase_client()

        assert first is second is mock_supabase
        assert create.call_count == 2

    def test_connection_failure(self, fresh_client_cache):
        with patch.object(database, "create_client", side_effect=Exception("refused")):
            with pytest.raises(ConnectionError):
                get_supabase_client()


class TestHealthEndpoint:

    def test_degraded_when_database_down(self):
        from fastapi.testclient import TestClient
        from main import app

        with patch("main.check_connection", return_value={"status": "unhealthy", "error": "down"}):
            response = TestClient(app).get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"

    def test_root_lists_import_endpoints(self):
        from fastapi.testclient import TestClient
        from main import app

        response = TestClient(app).get("/")

        assert response.json()["endpoints"]["imports"] == "/api/imports"
