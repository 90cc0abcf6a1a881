import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.context import RequestContext
from app.models.attribute import ProductAttribute, ProductAttributeTerm
from app.repositories.taxonomy_repo import TaxonomyRepository, display_name
from app.services.cell_formats import cell_text
from app.services.import_errors import (
    CatalogImportError,
    ConflictError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from app.services.product_import_service import ImportOutcome, SparseUpdate
from app.services.sheet_reader import NO_ID, SheetRows
from app.utils.transactions import row_transaction

log = logging.getLogger("catalog_import")


class TermImportService:
    """
    Create or rename the terms of one attribute from a sheet with
    ``id``, ``name`` and an optional ``slug`` column.

    A row matches an existing term by id, or else by slug; matching rows are
    patched, other rows create a new term.
    """

    def __init__(self, db: Session, ctx: RequestContext, attribute_id: str):
        self.db = db
        self.ctx = ctx
        self.taxonomy = TaxonomyRepository(db, ctx.organization_id)
        self.attribute = (
            db.query(ProductAttribute)
            .filter(
                ProductAttribute.id == attribute_id,
                ProductAttribute.organization_id == ctx.organization_id,
            )
            .first()
        )
        if not self.attribute:
            raise NotFoundError("Attribute not found")

    def import_rows(self, rows: SheetRows) -> ImportOutcome:
        outcome = ImportOutcome(row_count=len(rows))
        log.info("Term import started: attribute=%s rows=%s", self.attribute.id, len(rows))
        for row_number, row in rows.numbered():
            try:
                with row_transaction(self.db):
                    created = self._import_row(SparseUpdate(rows.headers, row))
            except (CatalogImportError, SQLAlchemyError) as e:
                if isinstance(e, SQLAlchemyError):
                    e = StoreError(f"Store operation failed: {getattr(e, 'orig', None) or e.__class__.__name__}")
                self.db.rollback()
                outcome.record_error(row_number, str(e))
                log.warning("Row %s failed: %s", row_number, e)
                continue
            if created:
                outcome.success_count += 1
            else:
                outcome.edit_count += 1
        log.info(
            "Term import finished: attribute=%s created=%s updated=%s failed=%s",
            self.attribute.id,
            outcome.success_count,
            outcome.edit_count,
            outcome.failed_count,
        )
        return outcome

    def _find(self, row: Dict[str, Any], slug: str) -> Optional[ProductAttributeTerm]:
        row_id = cell_text(row.get("id"))
        if row_id not in ("", NO_ID):
            return (
                self.db.query(ProductAttributeTerm)
                .filter(
                    ProductAttributeTerm.id == row_id,
                    ProductAttributeTerm.organization_id == self.ctx.organization_id,
                )
                .first()
            )
        return self.taxonomy.get_term_by_slug(slug) if slug else None

    def _check_slug_free(self, slug: str, term_id: Optional[str] = None):
        holder = self.taxonomy.get_term_by_slug(slug)
        if holder and holder.id != term_id:
            raise ConflictError(f"Term slug already in use: {slug}")

    def _import_row(self, patch: SparseUpdate) -> bool:
        name = cell_text(patch.value("name"))
        slug = cell_text(patch.value("slug")) or name
        term = self._find(patch.row, slug)

        if term is None:
            if not name:
                raise ValidationError("Term name is required")
            self._check_slug_free(slug)
            self.db.add(
                ProductAttributeTerm(
                    attribute_id=self.attribute.id,
                    organization_id=self.ctx.organization_id,
                    name=display_name(name),
                    slug=slug,
                )
            )
            self.db.flush()
            return True

        if term.attribute_id != self.attribute.id:
            raise ConflictError(f"Term '{term.slug}' belongs to another attribute")
        if name:
            term.name = display_name(name)
        if patch.present("slug") and slug != term.slug:
            self._check_slug_free(slug, term.id)
            term.slug = slug
        self.db.flush()
        return False
