"""
Spreadsheet import API routes.

Flow: upload -> preview (optional, repeatable) -> commit.
Error responses use the AppError format: {"error": {"code", "message", "details"}}.
"""

from typing import Optional

from fastapi import APIRouter, File, Form, Header, Query, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse
import structlog

from exceptions import AppError
from models.imports import (
    CommitRequest,
    CommitResponse,
    EntityTypeInfo,
    ImportJobListResponse,
    ImportJobResponse,
    IngestResponse,
    PreviewRequest,
    PreviewResponse,
)
from parsers.template_writer import XLSX_MEDIA_TYPE
from services.import_service import get_import_service

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/imports", tags=["Imports"])


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# CATALOG
# ===================

@router.get("/entity-types", response_model=list[EntityTypeInfo])
async def list_entity_types():
    """Importable entity types with their fields."""
    try:
        return get_import_service().entity_types()
    except Exception as e:
        return handle_error(e)


@router.get("/templates/{entity_type}")
async def download_template(entity_type: str):
    """
    Download the example spreadsheet for an entity type.

    Raises:
        422: Unknown entity type
    """
    try:
        filename, output = get_import_service().template(entity_type)
        return StreamingResponse(
            output,
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'}
        )
    except Exception as e:
        return handle_error(e)


# ===================
# PIPELINE
# ===================

@router.post("/upload", response_model=IngestResponse)
async def upload_file(
    file: UploadFile = File(..., description="Spreadsheet (.xlsx, .xls or .csv)"),
    entity_type: str = Form(..., description="clientes, apolices or comissoes"),
    x_user_id: Optional[str] = Header(None),
):
    """
    Upload a spreadsheet and get a proposed column mapping.

    Nothing is written. The returned upload_id can be sent to preview and
    commit instead of the rows.

    Raises:
        413: File too large
        422: Unknown entity type, unreadable file or unsupported extension
    """
    logger.info(
        "import_upload_started",
        filename=file.filename,
        content_type=file.content_type,
        entity_type=entity_type,
        user_id=x_user_id
    )

    try:
        content = await file.read()
        return get_import_service().ingest(
            content,
            file.filename or "",
            entity_type,
            content_type=file.content_type,
        )
    except Exception as e:
        return handle_error(e)


@router.post("/preview", response_model=PreviewResponse)
async def preview_import(data: PreviewRequest):
    """
    Validate rows with a column mapping. Nothing is written.

    Raises:
        404: Expired upload
        409: Upload already committed
        422: Unknown entity type or mapping targets unknown fields
    """
    try:
        return get_import_service().preview(data)
    except Exception as e:
        return handle_error(e)


@router.post("/commit", response_model=CommitResponse)
async def commit_import(
    data: CommitRequest,
    x_user_id: Optional[str] = Header(None),
):
    """
    Import rows and record the import job.

    Rows that fail are listed in the response; the rest are committed.

    Raises:
        404: Expired upload
        409: Upload already committed
        422: Unknown entity type, invalid mapping or no rows to import
    """
    try:
        return get_import_service().commit(data, user_id=x_user_id)
    except Exception as e:
        return handle_error(e)


# ===================
# HISTORY
# ===================

@router.get("/history", response_model=ImportJobListResponse)
async def list_import_history(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    x_user_id: Optional[str] = Header(None),
):
    """Past imports of the caller, newest first. Empty without X-User-Id."""
    try:
        return get_import_service().history(x_user_id, page=page, page_size=page_size)
    except Exception as e:
        return handle_error(e)


@router.get("/history/{job_id}", response_model=ImportJobResponse)
async def get_import_job(
    job_id: str,
    x_user_id: Optional[str] = Header(None),
):
    """
    Single import job with its error details.

    Raises:
        404: Job not found
    """
    try:
        return get_import_service().get_job(job_id, user_id=x_user_id)
    except Exception as e:
        return handle_error(e)
