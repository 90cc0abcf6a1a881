import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.context import RequestContext
from app.models.import_run import ImportRun, ImportRunStatus

log = logging.getLogger("catalog_import")


class ImportRunRepository:
    """Ledger of import batches. Every method commits so the run is visible immediately."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, run_id: str, organization_id: str) -> Optional[ImportRun]:
        return (
            self.db.query(ImportRun)
            .filter(ImportRun.id == run_id, ImportRun.organization_id == organization_id)
            .first()
        )

    def start(self, ctx: RequestContext, kind: str, filename: Optional[str]) -> ImportRun:
        run = ImportRun(
            organization_id=ctx.organization_id,
            tenant_id=ctx.tenant_id,
            user_id=ctx.user_id,
            kind=kind,
            filename=filename,
            status=ImportRunStatus.RUNNING,
        )
        self.db.add(run)
        self.db.commit()
        log.debug("Import run %s started (%s)", run.id, kind)
        return run

    def finish(self, run: ImportRun, outcome) -> ImportRun:
        if not outcome.errors:
            run.status = ImportRunStatus.COMPLETED
        elif outcome.success_count or outcome.edit_count:
            run.status = ImportRunStatus.PARTIAL
        else:
            run.status = ImportRunStatus.FAILED
        run.row_count = outcome.row_count
        run.success_count = outcome.success_count
        run.edit_count = outcome.edit_count
        run.errors = list(outcome.errors)
        run.finished_at = datetime.now(timezone.utc)
        self.db.commit()
        return run

    def fail(self, run: ImportRun, message: str) -> ImportRun:
        self.db.rollback()
        run.status = ImportRunStatus.FAILED
        run.last_error = message[:1024]
        run.finished_at = datetime.now(timezone.utc)
        self.db.commit()
        return run
