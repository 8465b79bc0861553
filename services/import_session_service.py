"""
Temporary storage for uploaded import files.

Keeps parsed rows in memory with TTL expiration so preview and commit can
work on the whole file by upload_id instead of the client resending it.
Single-server only.

Each session moves forward through
    uploaded -> mapped -> previewed -> committed
and never backwards; uploading the file again starts a new session.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional
import structlog

from exceptions import ImportSessionNotFoundError, ImportSessionStateError
from models.import_records import CellValue
from models.imports import ImportSessionState

logger = structlog.get_logger(__name__)

DEFAULT_TTL_MINUTES = 30

_STATE_ORDER = [
    ImportSessionState.UPLOADED,
    ImportSessionState.MAPPED,
    ImportSessionState.PREVIEWED,
    ImportSessionState.COMMITTED,
]


@dataclass
class ImportSession:
    """One uploaded file awaiting preview/commit."""
    upload_id: str
    entity_type: str
    filename: str
    headers: list[str]
    rows: list[dict[str, CellValue]]
    state: ImportSessionState = ImportSessionState.UPLOADED
    mapping: dict[str, Optional[str]] = field(default_factory=dict)
    row_numbers: list[int] = field(default_factory=list)

    def advance(self, state: ImportSessionState) -> None:
        """
        Move to a later (or the same) state.

        Raises:
            ImportSessionStateError: If the session is committed or the
                state lies behind the current one
        """
        terminal = self.state == ImportSessionState.COMMITTED
        if terminal or _STATE_ORDER.index(state) < _STATE_ORDER.index(self.state):
            raise ImportSessionStateError(self.upload_id, self.state.value, state.value)
        if state != self.state:
            logger.debug(
                "import_session_advanced",
                upload_id=self.upload_id,
                from_state=self.state.value,
                to_state=state.value
            )
        self.state = state

    def remap(self, mapping: dict[str, Optional[str]]) -> None:
        """
        Record the operator's mapping. Allowed any time before commit, so
        a previewed file can be previewed again with a corrected mapping.

        Raises:
            ImportSessionStateError: If the session is committed
        """
        if self.state == ImportSessionState.COMMITTED:
            raise ImportSessionStateError(
                self.upload_id, self.state.value, ImportSessionState.MAPPED.value
            )
        if self.state == ImportSessionState.UPLOADED:
            self.advance(ImportSessionState.MAPPED)
        self.mapping = dict(mapping)


_cache: dict[str, tuple[datetime, ImportSession]] = {}


def store_session(
    entity_type: str,
    filename: str,
    headers: list[str],
    rows: list[dict[str, CellValue]],
    ttl_minutes: int = DEFAULT_TTL_MINUTES,
    row_numbers: Optional[list[int]] = None,
) -> ImportSession:
    """Store a parsed upload, return the new session."""
    session = ImportSession(
        upload_id=str(uuid.uuid4()),
        entity_type=entity_type,
        filename=filename,
        headers=headers,
        rows=rows,
        row_numbers=row_numbers or [],
    )
    expires_at = datetime.now() + timedelta(minutes=ttl_minutes)
    _cache[session.upload_id] = (expires_at, session)
    _cleanup_expired()
    return session


def get_session(upload_id: str) -> ImportSession:
    """
    Retrieve a session by upload_id.

    Raises:
        ImportSessionNotFoundError: If unknown or expired
    """
    entry = _cache.get(upload_id)
    if entry is None:
        raise ImportSessionNotFoundError(upload_id)
    expires_at, session = entry
    if datetime.now() > expires_at:
        del _cache[upload_id]
        raise ImportSessionNotFoundError(upload_id)
    return session


def clear_sessions() -> None:
    _cache.clear()


def _cleanup_expired() -> None:
    """Remove all expired entries."""
    now = datetime.now()
    expired = [k for k, (exp, _) in _cache.items() if now > exp]
    for k in expired:
        del _cache[k]
