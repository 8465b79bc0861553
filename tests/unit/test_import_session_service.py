"""
Unit tests for the import session store.
"""

from datetime import datetime, timedelta

import pytest

from exceptions import ImportSessionNotFoundError, ImportSessionStateError
from models.imports import ImportSessionState
from services import import_session_service
from services.import_session_service import (
    get_session,
    store_session,
)


def new_session(**overrides):
    data = {
        "entity_type": "clientes",
        "filename": "clientes.xlsx",
        "headers": ["Nome", "CPF/CNPJ"],
        "rows": [{"Nome": "Ana", "CPF/CNPJ": "12345678900"}],
    }
    data.update(overrides)
    return store_session(**data)


class TestStore:

    def test_store_and_get(self):
        session = new_session()

        found = get_session(session.upload_id)

        assert found is session
        assert found.state == ImportSessionState.UPLOADED
        assert found.rows[0]["Nome"] == "Ana"

    def test_unknown_id(self):
        with pytest.raises(ImportSessionNotFoundError) as exc_info:
            get_session("missing")

        assert exc_info.value.status_code == 404

    def test_expired(self):
        session = new_session()
        import_session_service._cache[session.upload_id] = (datetime.now() - timedelta(seconds=1), session)

        with pytest.raises(ImportSessionNotFoundError):
            get_session(session.upload_id)

        assert session.upload_id not in import_session_service._cache

    def test_keeps_file_row_numbers(self):
        session = new_session(
            rows=[{"Nome": "Ana"}, {"Nome": "Bia"}],
            row_numbers=[2, 4],
        )

        assert get_session(session.upload_id).row_numbers == [2, 4]


class TestTransitions:

    def test_forward_path(self):
        session = new_session()

        session.advance(ImportSessionState.MAPPED)
        session.advance(ImportSessionState.PREVIEWED)
        session.advance(ImportSessionState.COMMITTED)

        assert session.state == ImportSessionState.COMMITTED

    def test_skipping_ahead_allowed(self):
        """Commit without preview goes straight to committed."""
        session = new_session()

        session.advance(ImportSessionState.COMMITTED)

        assert session.state == ImportSessionState.COMMITTED

    def test_backwards_rejected(self):
        session = new_session()
        session.advance(ImportSessionState.PREVIEWED)

        with pytest.raises(ImportSessionStateError) as exc_info:
            session.advance(ImportSessionState.MAPPED)

        assert exc_info.value.status_code == 409
        assert exc_info.value.details["current_state"] == "previewed"

    def test_committed_is_terminal(self):
        session = new_session()
        session.advance(ImportSessionState.COMMITTED)

        with pytest.raises(ImportSessionStateError):
            session.advance(ImportSessionState.COMMITTED)

    def test_remap_moves_uploaded_to_mapped(self):
        session = new_session()

        session.remap({"Nome": "nome"})

        assert session.state == ImportSessionState.MAPPED
        assert session.mapping == {"Nome": "nome"}

    def test_remap_keeps_previewed(self):
        session = new_session()
        session.advance(ImportSessionState.PREVIEWED)

        session.remap({"Nome": None})

        assert session.state == ImportSessionState.PREVIEWED
        assert session.mapping == {"Nome": None}

    def test_remap_after_commit_rejected(self):
        session = new_session()
        session.advance(ImportSessionState.COMMITTED)

        with pytest.raises(ImportSessionStateError):
            session.remap({"Nome": "nome"})
