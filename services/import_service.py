"""
Spreadsheet import pipeline.

Drives one import from upload to audit record:

    ingest   parse the file, propose a column mapping (no writes)
    preview  validate every row with the operator's mapping (no writes)
    commit   validate, reconcile each valid row, record the import job

Rows are processed one at a time in file order. A failing row never stops
the batch: it is recorded as a RowFailure (validation, reference or
storage) and the loop moves on. Successful rows stay committed even when
others fail.
"""

from dataclasses import dataclass, field
from io import BytesIO
from typing import Optional, Sequence
import structlog

from config import get_supabase_client, settings
from exceptions import (
    DatabaseError,
    FileTooLargeError,
    ReferenceNotFoundError,
    ValidationError,
)
from models.base import PaginationParams
from models.import_records import CellValue
from models.imports import (
    CommitRequest,
    CommitResponse,
    CommitSummary,
    EntityTypeInfo,
    FailureKind,
    ImportJobCreate,
    ImportJobListResponse,
    ImportJobResponse,
    ImportSessionState,
    IngestResponse,
    JobStatus,
    PreviewRequest,
    PreviewResponse,
    PreviewSummary,
    ReconcileAction,
    RowFailure,
    RowOutcome,
    SampleRow,
)
from parsers.sheet_parser import parse_sheet
from parsers.template_writer import build_template, template_filename
from services import import_session_service
from services.entity_registry import EntityTypeConfig, EntityTypeRegistry, get_entity_registry
from services.import_job_service import ImportJobService
from services.import_session_service import ImportSession
from services.mapping_service import ResolvedMapping, propose_mapping, resolve_mapping
from services.reconciliation_service import ReconciliationEngine
from services.validation_service import validate_rows

logger = structlog.get_logger(__name__)

DEFAULT_FILENAME = "importacao.xlsx"

RawRows = Sequence[dict[str, CellValue]]


@dataclass
class BatchResult:
    """Per-row results of one batch run."""
    total: int = 0
    inserted: int = 0
    updated: int = 0
    failures: list[RowFailure] = field(default_factory=list)

    @property
    def imported(self) -> int:
        return self.inserted + self.updated

    @property
    def error_count(self) -> int:
        return len(self.failures)

    @property
    def status(self) -> JobStatus:
        return JobStatus.from_counts(self.total, self.error_count)

    @property
    def error_messages(self) -> list[str]:
        return [failure.message for failure in self.failures]


class ImportService:
    """
    Import pipeline operations.

    Collaborators can be injected (tests swap the registry and database);
    by default they come from application config.
    """

    def __init__(
        self,
        db=None,
        registry: Optional[EntityTypeRegistry] = None,
        engine: Optional[ReconciliationEngine] = None,
        jobs: Optional[ImportJobService] = None,
    ):
        self.db = db if db is not None else get_supabase_client()
        self.registry = registry or get_entity_registry()
        self.engine = engine or ReconciliationEngine(self.db)
        self.jobs = jobs or ImportJobService(self.db)

    # ===================
    # CATALOG
    # ===================

    def entity_types(self) -> list[EntityTypeInfo]:
        return [config.to_info() for config in self.registry.all()]

    def template(self, entity_type: str) -> tuple[str, BytesIO]:
        """Filename and content of the example spreadsheet for an entity type."""
        config = self.registry.require(entity_type)
        return template_filename(config), build_template(config)

    # ===================
    # INGEST
    # ===================

    def ingest(
        self,
        content: bytes,
        filename: str,
        entity_type: str,
        content_type: Optional[str] = None,
    ) -> IngestResponse:
        """
        Parse an uploaded file and start an import session.

        Nothing is validated or written; the response carries the headers,
        a sample of rows tagged with their file row numbers and a proposed
        column mapping.

        Raises:
            UnknownEntityTypeError: Entity type not registered
            FileTooLargeError: Upload over the size limit
            UnsupportedFileTypeError: Extension not accepted
            ExcelParseError: File unreadable or without data rows
        """
        config = self.registry.require(entity_type)

        max_bytes = settings.import_max_file_size_bytes
        if len(content) > max_bytes:
            raise FileTooLargeError(len(content), max_bytes)

        sheet = parse_sheet(
            content,
            filename,
            content_type=content_type,
            allowed_extensions=settings.import_allowed_extensions,
        )
        suggested = propose_mapping(sheet.headers, config)

        session = import_session_service.store_session(
            entity_type=config.key,
            filename=filename,
            headers=sheet.headers,
            rows=sheet.rows,
            row_numbers=sheet.row_numbers,
            ttl_minutes=settings.import_session_ttl_minutes,
        )
        session.mapping = dict(suggested)

        logger.info(
            "import_upload_parsed",
            upload_id=session.upload_id,
            entity_type=config.key,
            filename=filename,
            total_rows=sheet.total_rows
        )

        return IngestResponse(
            upload_id=session.upload_id,
            filename=filename,
            entity_type=config.key,
            headers=sheet.headers,
            total_rows=sheet.total_rows,
            sample_rows=[
                SampleRow(row_number=row_number, values=row)
                for row_number, row in zip(
                    sheet.row_numbers[: settings.import_sample_rows],
                    sheet.rows[: settings.import_sample_rows],
                )
            ],
            suggested_mapping=suggested,
        )

    # ===================
    # PREVIEW
    # ===================

    def preview(self, request: PreviewRequest) -> PreviewResponse:
        """
        Validate rows with the operator's mapping. No writes.

        Raises:
            UnknownEntityTypeError: Entity type not registered
            InvalidMappingError: Mapping targets unknown fields
            ImportSessionNotFoundError: upload_id unknown or expired
            ImportSessionStateError: Session already committed
        """
        config = self.registry.require(request.entity_type)
        mapping = resolve_mapping(request.mapping, config)
        rows, row_numbers, session = self._load_rows(request, config)

        if session is not None:
            session.remap(request.mapping)

        outcomes = validate_rows(rows, mapping, config, row_numbers)
        invalid = [outcome for outcome in outcomes if not outcome.valid]

        if session is not None:
            session.advance(ImportSessionState.PREVIEWED)

        return PreviewResponse(
            summary=PreviewSummary(
                total=len(outcomes),
                valid=len(outcomes) - len(invalid),
                invalid=len(invalid),
            ),
            results=outcomes[: settings.import_preview_result_limit],
            errors=[
                self._validation_failure(outcome).message
                for outcome in invalid[: settings.import_preview_error_limit]
            ],
            mapping_warnings=mapping.warnings,
        )

    # ===================
    # COMMIT
    # ===================

    def commit(self, request: CommitRequest, user_id: Optional[str] = None) -> CommitResponse:
        """
        Import rows: validate, reconcile, and record the import job.

        The only operation with side effects. Per-row failures are reported
        in the response; only problems with the request itself raise.

        Raises:
            UnknownEntityTypeError: Entity type not registered
            InvalidMappingError: Mapping targets unknown fields
            ValidationError: No rows to import
            ImportSessionNotFoundError: upload_id unknown or expired
            ImportSessionStateError: Session already committed
        """
        config = self.registry.require(request.entity_type)
        mapping = resolve_mapping(request.mapping, config)
        rows, row_numbers, session = self._load_rows(request, config)

        if not rows:
            raise ValidationError("No rows to import", code="IMPORT_NO_ROWS")

        if session is not None:
            session.advance(ImportSessionState.COMMITTED)

        filename = request.filename or (session.filename if session else None) or DEFAULT_FILENAME

        logger.info(
            "import_commit_started",
            entity_type=config.key,
            filename=filename,
            total_rows=len(rows),
            user_id=user_id
        )

        result = self.run_batch(rows, mapping, config, user_id, row_numbers)
        job = self._record_job(result, config, filename, user_id)

        logger.info(
            "import_commit_completed",
            entity_type=config.key,
            job_id=job.id if job else None,
            total=result.total,
            imported=result.imported,
            inserted=result.inserted,
            updated=result.updated,
            errors=result.error_count,
            status=result.status.value
        )

        limit = settings.import_commit_error_limit
        return CommitResponse(
            summary=CommitSummary(
                total=result.total,
                imported=result.imported,
                errors=result.error_count,
                inserted=result.inserted,
                updated=result.updated,
            ),
            status=result.status,
            job_id=job.id if job else None,
            errors=result.error_messages[:limit],
            failures=result.failures[:limit],
            mapping_warnings=mapping.warnings,
        )

    def run_batch(
        self,
        rows: RawRows,
        mapping: ResolvedMapping,
        config: EntityTypeConfig,
        user_id: Optional[str] = None,
        row_numbers: Optional[Sequence[int]] = None,
    ) -> BatchResult:
        """
        Validate all rows, then reconcile each valid one in file order.

        Policies and commissions look up records created by earlier rows
        (or earlier imports), so rows are never reordered or parallelized.
        """
        outcomes = validate_rows(rows, mapping, config, row_numbers)
        result = BatchResult(total=len(outcomes))

        for outcome in outcomes:
            if not outcome.valid:
                logger.debug(
                    "import_row_invalid",
                    entity_type=config.key,
                    row=outcome.row_number,
                    errors=outcome.errors
                )
                result.failures.append(self._validation_failure(outcome))
                continue

            failure = self._reconcile_row(outcome, config, user_id, result)
            if failure is not None:
                result.failures.append(failure)

        return result

    def _reconcile_row(
        self,
        outcome: RowOutcome,
        config: EntityTypeConfig,
        user_id: Optional[str],
        result: BatchResult,
    ) -> Optional[RowFailure]:
        """Reconcile one valid row; return its failure, if any."""
        try:
            action = self.engine.reconcile(outcome, config, user_id)
        except ReferenceNotFoundError as e:
            logger.warning(
                "import_row_reference_missing",
                entity_type=config.key,
                row=outcome.row_number,
                error=e.message
            )
            return RowFailure(row_number=outcome.row_number, kind=FailureKind.REFERENCE, messages=[e.message])
        except DatabaseError as e:
            logger.error(
                "import_row_storage_failed",
                entity_type=config.key,
                row=outcome.row_number,
                error=e.message
            )
            return RowFailure(row_number=outcome.row_number, kind=FailureKind.STORAGE, messages=[e.message])
        except Exception as e:
            logger.error(
                "import_row_storage_failed",
                entity_type=config.key,
                row=outcome.row_number,
                error=str(e),
                error_type=type(e).__name__
            )
            return RowFailure(
                row_number=outcome.row_number,
                kind=FailureKind.STORAGE,
                messages=[str(e) or type(e).__name__],
            )

        if action == ReconcileAction.UPDATED:
            result.updated += 1
        else:
            result.inserted += 1
        return None

    # ===================
    # HISTORY
    # ===================

    def history(self, user_id: Optional[str], page: int = 1, page_size: int = 20) -> ImportJobListResponse:
        jobs, total = self.jobs.list_for_user(user_id, page=page, page_size=page_size)
        return ImportJobListResponse(
            data=jobs,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=PaginationParams(page=page, page_size=page_size).total_pages(total),
        )

    def get_job(self, job_id: str, user_id: Optional[str] = None) -> ImportJobResponse:
        return self.jobs.get_by_id(job_id, user_id=user_id)

    # ===================
    # HELPERS
    # ===================

    def _load_rows(
        self,
        request: PreviewRequest,
        config: EntityTypeConfig,
    ) -> tuple[RawRows, Optional[list[int]], Optional[ImportSession]]:
        """
        Rows sent inline, or the full file of an earlier upload.

        Returns:
            Tuple of (rows, file row numbers or None for inline rows, session)
        """
        if not request.upload_id:
            return request.rows or [], None, None

        session = import_session_service.get_session(request.upload_id)
        if session.entity_type != config.key:
            raise ValidationError(
                f"Upload {request.upload_id} was parsed for {session.entity_type}, not {config.key}",
                code="IMPORT_ENTITY_TYPE_MISMATCH",
                details={"upload_entity_type": session.entity_type, "requested": config.key},
            )
        return session.rows, session.row_numbers or None, session

    @staticmethod
    def _validation_failure(outcome: RowOutcome) -> RowFailure:
        return RowFailure(
            row_number=outcome.row_number,
            kind=FailureKind.VALIDATION,
            messages=outcome.errors,
        )

    def _record_job(
        self,
        result: BatchResult,
        config: EntityTypeConfig,
        filename: str,
        user_id: Optional[str],
    ) -> Optional[ImportJobResponse]:
        """Write the audit record. A ledger failure does not hide the batch result."""
        job = ImportJobCreate(
            entity_type=config.key,
            source_filename=filename,
            total_rows=result.total,
            imported_count=result.imported,
            error_count=result.error_count,
            status=result.status,
            error_details=result.error_messages,
            user_id=user_id,
        )
        try:
            return self.jobs.record(job)
        except DatabaseError as e:
            logger.warning(
                "import_job_not_recorded",
                entity_type=config.key,
                filename=filename,
                error=e.message
            )
            return None


_service: Optional[ImportService] = None


def get_import_service() -> ImportService:
    global _service
    if _service is None:
        _service = ImportService()
    return _service
