import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse
from filelock import Timeout
from sqlalchemy.orm import Session

from app.api.deps import get_request_context
from app.config import settings
from app.context import RequestContext
from app.db import get_db
from app.models.import_run import ImportRun
from app.repositories.import_run_repo import ImportRunRepository
from app.schemas.import_schema import ImportRunOut
from app.services.import_errors import NotFoundError, ValidationError
from app.services.product_import_service import (
    ImportOutcome,
    ProductImportService,
    organization_lock,
)
from app.services.sheet_reader import SheetRows, decode_upload
from app.services.term_import_service import TermImportService

log = logging.getLogger("catalog_import")

router = APIRouter(tags=["import"])


def _read_upload(file: Optional[UploadFile]) -> SheetRows:
    if file is None:
        raise HTTPException(status_code=400, detail="No file provided under key 'file'")
    content = file.file.read(settings.IMPORT_MAX_UPLOAD_BYTES + 1)
    if len(content) > settings.IMPORT_MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large")
    try:
        return decode_upload(content, file.filename, sample_rows=settings.IMPORT_SAMPLE_ROWS)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _respond(outcome: ImportOutcome, run: ImportRun) -> JSONResponse:
    """201 when every row went through, 207 on partial success, 500 when nothing did."""
    headers = {"X-Import-Run-Id": run.id}
    if not outcome.errors:
        return JSONResponse(outcome.as_dict(), status_code=201, headers=headers)
    if outcome.success_count or outcome.edit_count:
        body = outcome.as_dict()
        body["errors"] = outcome.errors
        return JSONResponse(body, status_code=207, headers=headers)
    return JSONResponse({"rowErrors": outcome.errors}, status_code=500, headers=headers)


def _run_import(db: Session, ctx: RequestContext, kind: str, filename: Optional[str], service, rows: SheetRows):
    runs = ImportRunRepository(db)
    run = runs.start(ctx, kind, filename)
    try:
        with organization_lock(ctx.organization_id).acquire(
            timeout=settings.IMPORT_LOCK_TIMEOUT_SECONDS
        ):
            outcome = service.import_rows(rows)
    except Timeout:
        runs.fail(run, "Another import is running for this organization")
        raise HTTPException(
            status_code=409,
            detail="Another import is running for this organization; try again",
            headers={"X-Import-Run-Id": run.id},
        )
    except Exception as e:
        log.exception("Import run %s aborted", run.id)
        runs.fail(run, str(e) or e.__class__.__name__)
        return JSONResponse(
            {"error": str(e) or "Import failed"},
            status_code=500,
            headers={"X-Import-Run-Id": run.id},
        )
    runs.finish(run, outcome)
    return _respond(outcome, run)


@router.post("/api/products/import", summary="Import products from a spreadsheet")
def import_products(
    file: UploadFile = File(None),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """
    multipart form: file=<.xlsx or .csv>
    returns { rowCount, successCount, editCount } (+ errors on partial success)
    """
    rows = _read_upload(file)
    svc = ProductImportService(db, ctx)
    return _run_import(db, ctx, "products", file.filename, svc, rows)


@router.get("/api/products/import/{run_id}", summary="Get an import run")
def get_import_run(
    run_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    run = ImportRunRepository(db).get(run_id, ctx.organization_id)
    if not run:
        raise HTTPException(status_code=404, detail="Import run not found")
    out = ImportRunOut(
        id=run.id,
        kind=run.kind,
        filename=run.filename,
        status=run.status.value,
        rowCount=run.row_count,
        successCount=run.success_count,
        editCount=run.edit_count,
        errors=run.errors or [],
        lastError=run.last_error,
        startedAt=run.started_at,
        finishedAt=run.finished_at,
    )
    return out.model_dump(by_alias=True, mode="json")


@router.post(
    "/api/product-attributes/{attribute_id}/terms/import",
    summary="Import attribute terms from a spreadsheet",
)
def import_attribute_terms(
    attribute_id: str,
    file: UploadFile = File(None),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    try:
        svc = TermImportService(db, ctx, attribute_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    rows = _read_upload(file)
    return _run_import(db, ctx, "attribute_terms", file.filename, svc, rows)
