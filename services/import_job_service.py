"""
Import job ledger.

Persists one audit record per committed batch and lists them back for the
import history screen. Records are written once and never updated.
"""
from typing import Optional
import structlog

from config import get_supabase_client, settings
from exceptions import DatabaseError, ImportJobNotFoundError
from models.base import PaginationParams
from models.imports import ImportJobCreate, ImportJobResponse, JobStatus

logger = structlog.get_logger(__name__)

# Status values as stored in importacoes_historico
STORED_STATUS = {
    JobStatus.SUCCESS: "sucesso",
    JobStatus.PARTIAL: "parcial",
    JobStatus.ERROR: "erro",
}
_STATUS_FROM_STORED = {value: status for status, value in STORED_STATUS.items()}


class ImportJobService:
    def __init__(self, db=None, table: Optional[str] = None):
        self.db = db if db is not None else get_supabase_client()
        self.table = table or settings.import_history_table
        self.error_limit = settings.import_job_error_limit

    # ===================
    # WRITE
    # ===================

    def record(self, job: ImportJobCreate) -> ImportJobResponse:
        """
        Persist the audit record of a finished batch.

        Error details are capped before storage.

        Raises:
            DatabaseError: If the insert fails
        """
        row = self._to_row(job)
        row["detalhes_erros"] = row["detalhes_erros"][: self.error_limit]

        try:
            result = self.db.table(self.table).insert(row).execute()
        except Exception as e:
            logger.error(
                "import_job_record_failed",
                entity_type=job.entity_type,
                error=str(e)
            )
            raise DatabaseError("insert", str(e), details={"table": self.table})

        if not result.data:
            raise DatabaseError("insert", "No data returned", details={"table": self.table})

        stored = self._from_row(result.data[0])
        logger.info(
            "import_job_recorded",
            job_id=stored.id,
            entity_type=stored.entity_type,
            filename=stored.source_filename,
            total=stored.total_rows,
            imported=stored.imported_count,
            errors=stored.error_count,
            status=stored.status.value
        )
        return stored

    # ===================
    # READ
    # ===================

    def list_for_user(
        self,
        user_id: Optional[str],
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[ImportJobResponse], int]:
        """
        Import jobs of a user, newest first.

        Without a user there is no history to show.

        Returns:
            Tuple of (jobs list, total count)
        """
        logger.info("getting_import_jobs", user_id=user_id, page=page, page_size=page_size)

        if not user_id:
            return [], 0

        pagination = PaginationParams(page=page, page_size=page_size)

        try:
            result = (
                self.db.table(self.table)
                .select("*", count="exact")
                .eq("usuario_id", user_id)
                .order("created_at", desc=True)
                .range(pagination.offset, pagination.last_index)
                .execute()
            )
        except Exception as e:
            logger.error("get_import_jobs_failed", error=str(e))
            raise DatabaseError("select", str(e))

        jobs = [self._from_row(row) for row in result.data]
        return jobs, result.count or 0

    def get_by_id(self, job_id: str, user_id: Optional[str] = None) -> ImportJobResponse:
        """
        Single import job.

        Raises:
            ImportJobNotFoundError: If the job doesn't exist (or belongs to another user)
        """
        if not user_id:
            raise ImportJobNotFoundError(job_id)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", job_id)
                .eq("usuario_id", user_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("get_import_job_failed", job_id=job_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise ImportJobNotFoundError(job_id)
        return self._from_row(result.data[0])

    # ===================
    # ROW MAPPING
    # ===================

    @staticmethod
    def _to_row(job: ImportJobCreate) -> dict:
        return {
            "usuario_id": job.user_id,
            "tipo": job.entity_type,
            "arquivo_nome": job.source_filename,
            "total_linhas": job.total_rows,
            "importados": job.imported_count,
            "erros": job.error_count,
            "status": STORED_STATUS[job.status],
            "detalhes_erros": list(job.error_details),
        }

    @staticmethod
    def _from_row(row: dict) -> ImportJobResponse:
        return ImportJobResponse(
            id=str(row["id"]),
            user_id=row.get("usuario_id"),
            entity_type=row["tipo"],
            source_filename=row.get("arquivo_nome") or "",
            total_rows=row.get("total_linhas") or 0,
            imported_count=row.get("importados") or 0,
            error_count=row.get("erros") or 0,
            status=_stored_status(row["status"]),
            error_details=row.get("detalhes_erros") or [],
            created_at=row.get("created_at"),
        )


def _stored_status(value: str) -> JobStatus:
    """Stored status to JobStatus; rows written with the English values are read too."""
    if value in _STATUS_FROM_STORED:
        return _STATUS_FROM_STORED[value]
    return JobStatus(value)
