"""
Shared test fixtures.

The Supabase double keeps rows in memory per table so reconciliation can
find what earlier rows (or earlier imports) wrote.
"""

import os
import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings are loaded at import time
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
from unittest.mock import patch
from datetime import datetime
from typing import Generator, Optional
from uuid import uuid4

from services.entity_registry import build_default_registry
from services.import_job_service import ImportJobService
from services.import_service import ImportService
from services.import_session_service import clear_sessions
from services.reconciliation_service import ReconciliationEngine


# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """Chainable query over one in-memory table."""

    def __init__(self, client: "MockSupabaseClient", table: str, action: str, payload=None):
        self._client = client
        self._table = table
        self._action = action
        self._payload = payload
        self._filters: list[tuple[str, object]] = []
        self._order: Optional[tuple[str, bool]] = None
        self._range: Optional[tuple[int, int]] = None
        self._limit: Optional[int] = None

    def select(self, *args, **kwargs):
        return self

    def eq(self, column, value):
        self._filters.append((column, value))
        return self

    def order(self, column, desc: bool = False, **kwargs):
        self._order = (column, desc)
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def execute(self) -> MockSupabaseResponse:
        self._client.calls.append((self._table, self._action, self._payload))
        error = self._client.failures.get((self._table, self._action))
        if error is not None:
            raise error

        rows = self._client.rows(self._table)

        if self._action == "insert":
            items = self._payload if isinstance(self._payload, list) else [self._payload]
            stored = []
            for item in items:
                row = {"id": str(uuid4()), "created_at": datetime.utcnow().isoformat(), **item}
                rows.append(row)
                stored.append(dict(row))
            return MockSupabaseResponse(data=stored)

        matched = [
            row for row in rows
            if all(row.get(column) == value for column, value in self._filters)
        ]

        if self._action == "update":
            for row in matched:
                row.update(self._payload)
            return MockSupabaseResponse(data=[dict(row) for row in matched])

        if self._order:
            column, desc = self._order
            matched = sorted(matched, key=lambda r: r.get(column) or "", reverse=desc)
        total = len(matched)
        if self._range:
            start, end = self._range
            matched = matched[start:end + 1]
        if self._limit is not None:
            matched = matched[: self._limit]
        return MockSupabaseResponse(data=[dict(row) for row in matched], count=total)


class MockSupabaseTable:
    def __init__(self, client: "MockSupabaseClient", name: str):
        self._client = client
        self._name = name

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self._client, self._name, "select")

    def insert(self, data):
        return MockSupabaseQuery(self._client, self._name, "insert", data)

    def update(self, data):
        return MockSupabaseQuery(self._client, self._name, "update", data)


class MockSupabaseClient:
    """
    In-memory Supabase client.

    Usage:
        mock_supabase.set_table_data("clientes", [{"id": "c1", "cpf_cnpj": "12345678900"}])
        mock_supabase.fail_on("comissoes", "insert")
        mock_supabase.writes("clientes")  # insert/update calls made
    """

    def __init__(self):
        self._tables: dict[str, list[dict]] = {}
        self.failures: dict[tuple[str, str], Exception] = {}
        self.calls: list[tuple[str, str, object]] = []

    def set_table_data(self, table_name: str, data: list):
        """Configure the rows of a table."""
        self._tables[table_name] = [dict(row) for row in data]

    def rows(self, table_name: str) -> list[dict]:
        return self._tables.setdefault(table_name, [])

    def fail_on(self, table_name: str, action: str, error: Optional[Exception] = None):
        """Make every `action` ("select", "insert", "update") on a table raise."""
        self.failures[(table_name, action)] = error or Exception("connection reset")

    def writes(self, table_name: Optional[str] = None) -> list[tuple[str, str, object]]:
        return [
            call for call in self.calls
            if call[1] in ("insert", "update") and (table_name is None or call[0] == table_name)
        ]

    def table(self, name: str) -> MockSupabaseTable:
        return MockSupabaseTable(self, name)


# ===================
# FIXTURES
# ===================

@pytest.fixture(autouse=True)
def reset_import_sessions() -> Generator:
    """Uploaded files live in a module-level cache; isolate tests."""
    clear_sessions()
    yield
    clear_sessions()


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    return MockSupabaseClient()


@pytest.fixture
def registry():
    return build_default_registry()


@pytest.fixture
def engine(mock_supabase) -> ReconciliationEngine:
    return ReconciliationEngine(db=mock_supabase)


@pytest.fixture
def job_service(mock_supabase) -> ImportJobService:
    return ImportJobService(db=mock_supabase)


@pytest.fixture
def import_service(mock_supabase, registry) -> ImportService:
    return ImportService(db=mock_supabase, registry=registry)


@pytest.fixture
def existing_client() -> dict:
    """Client already stored before the import runs."""
    return {
        "id": "cliente-uuid-1",
        "usuario_id": "user-1",
        "cpf_cnpj": "12345678900",
        "nome": "João da Silva",
        "email": "joao@email.com",
        "tipo": "PF",
        "ativo": True,
    }


@pytest.fixture
def existing_policy() -> dict:
    return {
        "id": "apolice-uuid-1",
        "cliente_id": "cliente-uuid-1",
        "numero_apolice": "APO-001",
        "seguradora": "Porto Seguro",
        "ramo": "auto",
        "valor_premio": 2500.0,
        "status": "vigente",
    }


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(import_service):
    """
    FastAPI test client whose import service runs on the mock database.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            mock_supabase.set_table_data("clientes", [...])
            response = test_client_with_mock_db.post("/api/imports/commit", json={...})
    """
    from fastapi.testclient import TestClient
    from main import app

    with patch("routes.imports.get_import_service", return_value=import_service):
        yield TestClient(app)
