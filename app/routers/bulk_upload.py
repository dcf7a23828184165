from fastapi import APIRouter, Body, Depends, File, Query, UploadFile
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Optional
import logging
import traceback

from app.core.exceptions import BulkUploadError, UnknownEntityError
from app.core.security import CurrentUser, require_hierarchy
from app.db.session import get_db
from app.schemas.bulk_upload import BulkSummary, BulkUploadResponse
from app.services.bulk_import import BulkImportService, get_entity_config
from app.services.image_resolver import ImageResolver, get_image_resolver
from app.services.spreadsheet import XLSX_MEDIA_TYPE, build_workbook, parse_workbook
from app.services.templates import get_template

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/bulk-uploads", tags=["Bulk Uploads"])

require_admin = require_hierarchy(1)


def _error_response(e: BulkUploadError) -> JSONResponse:
    return JSONResponse(
        status_code=e.status_code,
        content={"success": False, "message": e.message, **e.payload},
    )


def _server_error(entity: str, records: Any, e: Exception) -> JSONResponse:
    logger.error("Error in bulk upload of %s: %s\n%s", entity, e, traceback.format_exc())
    total = len(records) if isinstance(records, list) else 0
    response = BulkUploadResponse(
        success=False,
        message=f"Failed to upload {entity}",
        summary=BulkSummary(total=total, imported=0, skipped=0, failed=total),
        error=str(e),
    )
    return JSONResponse(status_code=500, content=response.model_dump(by_alias=True, exclude_none=True, mode="json"))


async def _run_import(
    entity: str,
    records: Any,
    current_user: CurrentUser,
    db: AsyncSession,
    image_resolver: ImageResolver,
    auto_create: Optional[bool],
):
    try:
        service = BulkImportService(db, image_resolver)
        return await service.import_batch(entity, records, current_user, auto_create=auto_create)
    except BulkUploadError as e:
        return _error_response(e)
    except Exception as e:
        return _server_error(entity, records, e)


@router.get(
    "/template/{entity}",
    summary="Download JSON template",
    description="Example records for the entity, ready to edit and upload.",
)
async def download_template(entity: str):
    try:
        template = get_template(entity)
    except UnknownEntityError as e:
        return _error_response(e)
    return JSONResponse(
        content=template,
        headers={"Content-Disposition": f"attachment; filename={entity}-template.json"},
    )


@router.get(
    "/template/{entity}/excel",
    summary="Download Excel template",
    description="The JSON template flattened into dot-notation columns, one record per row.",
)
async def download_excel_template(entity: str):
    try:
        content = build_workbook(get_template(entity))
    except UnknownEntityError as e:
        return _error_response(e)
    except Exception as e:
        logger.error("Error creating Excel template: %s\n%s", e, traceback.format_exc())
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Failed to create Excel template", "error": str(e)},
        )
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={entity}-template.xlsx"},
    )


@router.post(
    "/{entity}",
    response_model=BulkUploadResponse,
    response_model_exclude_none=True,
    summary="Bulk upload records",
    description="Validates, resolves references and imports up to 1000 records of one entity type.",
)
async def bulk_upload(
    entity: str,
    records: Any = Body(...),
    auto_create: Optional[bool] = Query(None, alias="autoCreate"),
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    image_resolver: ImageResolver = Depends(get_image_resolver),
):
    return await _run_import(entity, records, current_user, db, image_resolver, auto_create)


@router.post(
    "/{entity}/excel",
    response_model=BulkUploadResponse,
    response_model_exclude_none=True,
    summary="Bulk upload from Excel",
    description="Accepts an .xlsx built from the Excel template and runs the same import.",
)
async def bulk_upload_excel(
    entity: str,
    file: UploadFile = File(...),
    auto_create: Optional[bool] = Query(None, alias="autoCreate"),
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    image_resolver: ImageResolver = Depends(get_image_resolver),
):
    try:
        get_entity_config(entity)
        records = parse_workbook(entity, await file.read())
    except BulkUploadError as e:
        return _error_response(e)
    logger.info(f"Parsed {len(records)} {entity} rows from {file.filename}")
    return await _run_import(entity, records, current_user, db, image_resolver, auto_create)
