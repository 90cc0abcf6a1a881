import enum
import hashlib
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from filelock import FileLock
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.context import RequestContext
from app.models.product import Product, ProductVariation
from app.repositories.product_repo import ProductRepository
from app.repositories.taxonomy_repo import TaxonomyRepository
from app.services.cell_formats import (
    cell_text,
    is_blank,
    parse_flag,
    parse_pair_map,
    parse_quantity,
    split_list,
)
from app.services.import_errors import (
    CatalogImportError,
    ConflictError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from app.services.sheet_reader import NO_ID, SheetRows
from app.utils.html import sanitize
from app.utils.transactions import row_transaction

log = logging.getLogger("catalog_import")


class RowShape(str, enum.Enum):
    SIMPLE = "simple"
    VARIABLE = "variable"
    VARIATION = "variation"


class RowAction(enum.Enum):
    CREATE = "create"
    UPDATE = "update"


@dataclass
class RowIntent:
    shape: RowShape
    action: RowAction
    row_number: int
    row: Dict[str, Any]
    product: Optional[Product] = None
    parent: Optional[Product] = None
    variation: Optional[ProductVariation] = None


@dataclass
class ImportOutcome:
    row_count: int
    success_count: int = 0
    edit_count: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def record_error(self, row_number: int, message: str):
        self.errors.append({"row": row_number, "error": message})

    @property
    def failed_count(self) -> int:
        return len(self.errors)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "rowCount": self.row_count,
            "successCount": self.success_count,
            "editCount": self.edit_count,
        }


Columns = Union[str, Tuple[str, ...]]
FieldSpec = Tuple[str, Columns, Callable[[Any], Any]]


class SparseUpdate:
    """
    Patch builder for update rows: a field is only written when its column is
    part of the sheet and this row's cell is non-empty.
    """

    def __init__(self, headers: Iterable[str], row: Dict[str, Any]):
        self.headers = set(headers)
        self.row = row

    def present(self, column: str) -> bool:
        return column in self.headers and not is_blank(self.row.get(column))

    def value(self, columns: Columns):
        for column in (columns,) if isinstance(columns, str) else columns:
            if self.present(column):
                return self.row[column]
        return None

    def collect(self, specs: Sequence[FieldSpec]) -> Dict[str, Any]:
        fields = {}
        for name, columns, convert in specs:
            raw = self.value(columns)
            if raw is not None:
                fields[name] = convert(raw)
        return fields


def _status(value) -> str:
    return "published" if parse_flag(value) else "draft"


def _parent_type(value) -> str:
    text = cell_text(value).lower()
    if text not in (RowShape.SIMPLE.value, RowShape.VARIABLE.value):
        raise ValidationError(f"Unknown productType '{cell_text(value)}'")
    return text


PRICE_FIELDS: List[FieldSpec] = [
    ("regular_price", "regularPrice", parse_pair_map),
    ("sale_price", "salePrice", parse_pair_map),
    ("cost", "cost", parse_pair_map),
]

PRODUCT_FIELDS: List[FieldSpec] = [
    ("title", "title", cell_text),
    ("description", "description", sanitize),
    ("image", "image", cell_text),
    ("status", "published", _status),
    ("product_type", "productType", _parent_type),
    ("manage_stock", "manageStock", parse_flag),
    ("allow_backorders", ("allowBackorders", "backorder"), parse_flag),
]

VARIATION_FIELDS: List[FieldSpec] = PRICE_FIELDS + [("image", "image", cell_text)]


def organization_lock(organization_id: str) -> FileLock:
    """File lock serializing imports of one organization across workers."""
    os.makedirs(settings.IMPORT_LOCK_DIR, exist_ok=True)
    digest = hashlib.sha1(organization_id.encode("utf-8")).hexdigest()
    return FileLock(os.path.join(settings.IMPORT_LOCK_DIR, f"import_{digest}.lock"))


class ProductImportService:
    """
    Reconcile spreadsheet rows against the catalog of one organization.

    Rows are handled one at a time in sheet order, since later rows may refer
    to parents, categories or attributes created by earlier ones. Each row runs
    in its own savepoint: a failing row is rolled back and recorded, and the
    batch moves on to the next row.
    """

    def __init__(self, db: Session, ctx: RequestContext):
        self.db = db
        self.ctx = ctx
        self.products = ProductRepository(db, ctx.organization_id, ctx.tenant_id)
        self.taxonomy = TaxonomyRepository(db, ctx.organization_id)
        self.headers: set = set()
        self._batch_skus: set = set()
        self._handlers = {
            (RowShape.SIMPLE, RowAction.CREATE): self._create_simple,
            (RowShape.VARIABLE, RowAction.CREATE): self._create_variable,
            (RowShape.VARIATION, RowAction.CREATE): self._create_variation,
            (RowShape.SIMPLE, RowAction.UPDATE): self._update_product,
            (RowShape.VARIABLE, RowAction.UPDATE): self._update_product,
            (RowShape.VARIATION, RowAction.UPDATE): self._update_variation,
        }

    def import_rows(self, rows: SheetRows) -> ImportOutcome:
        outcome = ImportOutcome(row_count=len(rows))
        self.headers = set(rows.headers)
        self._batch_skus = set()
        log.info(
            "Product import started: organization=%s rows=%s",
            self.ctx.organization_id,
            outcome.row_count,
        )

        for row_number, row in rows.numbered():
            try:
                with row_transaction(self.db):
                    intent = self.lookup(row_number, row)
                    log.debug("Row %s: %s %s", row_number, intent.action.value, intent.shape.value)
                    self._handlers[(intent.shape, intent.action)](intent)
            except CatalogImportError as e:
                self._row_failed(outcome, row_number, str(e))
                continue
            except SQLAlchemyError as e:
                err = StoreError(f"Store operation failed: {getattr(e, 'orig', None) or e.__class__.__name__}")
                log.debug("Row %s store error detail: %s", row_number, e)
                self._row_failed(outcome, row_number, str(err))
                continue

            if intent.action is RowAction.CREATE:
                outcome.success_count += 1
                created = intent.variation if intent.shape is RowShape.VARIATION else intent.product
                self._batch_skus.add(created.sku)
            else:
                outcome.edit_count += 1

        log.info(
            "Product import finished: organization=%s rows=%s created=%s updated=%s failed=%s",
            self.ctx.organization_id,
            outcome.row_count,
            outcome.success_count,
            outcome.edit_count,
            outcome.failed_count,
        )
        return outcome

    def _row_failed(self, outcome: ImportOutcome, row_number: int, message: str):
        self.db.rollback()
        self.taxonomy.reset_cache()
        outcome.record_error(row_number, message)
        log.warning("Row %s failed: %s", row_number, message)

    # --- lookup ---

    def lookup(self, row_number: int, row: Dict[str, Any]) -> RowIntent:
        declared = cell_text(row.get("productType")).lower()
        row_id = cell_text(row.get("id"))
        has_id = row_id not in ("", NO_ID)
        sku = cell_text(row.get("sku"))

        if declared == RowShape.VARIATION.value:
            parent = self._parent_for(row)
            variation = None
            if has_id:
                variation = self.db.get(ProductVariation, row_id)
                if variation is not None and variation.product_id != parent.id:
                    variation = None
            elif sku:
                variation = self.products.get_variation(parent.id, sku)
                self._check_not_repeated(sku, variation)
            action = RowAction.UPDATE if variation else RowAction.CREATE
            return RowIntent(RowShape.VARIATION, action, row_number, row, parent=parent, variation=variation)

        if declared and declared not in (RowShape.SIMPLE.value, RowShape.VARIABLE.value):
            raise ValidationError(f"Unknown productType '{cell_text(row.get('productType'))}'")

        if has_id:
            product = self.products.get_by_id(row_id)
        else:
            product = self.products.get_by_sku(sku) if sku else None
            self._check_not_repeated(sku, product)

        if product:
            shape = RowShape(declared or product.product_type)
            return RowIntent(shape, RowAction.UPDATE, row_number, row, product=product)
        return RowIntent(RowShape(declared or "simple"), RowAction.CREATE, row_number, row)

    def _check_not_repeated(self, sku: str, match):
        """A SKU created by an earlier row of this batch cannot be claimed again by SKU alone."""
        if match is not None and sku in self._batch_skus:
            raise ConflictError(f"SKU already exists: {sku}")

    def _parent_for(self, row: Dict[str, Any]) -> Product:
        parent_sku = cell_text(row.get("parent"))
        if not parent_sku:
            raise ValidationError("Variation rows need the parent product SKU in 'parent'")
        parent = self.products.get_by_sku(parent_sku)
        if not parent:
            raise NotFoundError(f"Parent product with SKU '{parent_sku}' not found")
        if parent.product_type != RowShape.VARIABLE.value:
            raise ValidationError(f"Parent product '{parent_sku}' is not a variable product")
        return parent

    # --- shared cell handling ---

    def _sku_taken(self, sku: str, exclude_product_id: Optional[str] = None) -> bool:
        return self.products.sku_exists(sku, exclude_id=exclude_product_id) or self.products.variation_sku_exists(sku)

    def _allocate_sku(self, row: Dict[str, Any]) -> str:
        requested = cell_text(row.get("sku"))
        if not requested:
            return self.products.generate_sku(taken=self.products.variation_sku_exists)
        if self._sku_taken(requested):
            raise ConflictError(f"SKU already exists: {requested}")
        return requested

    def _price_maps(self, row: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
        return {name: convert(row.get(column)) for name, column, convert in PRICE_FIELDS}

    def _stock(self, row: Dict[str, Any]) -> Optional[Tuple[str, Dict[str, int]]]:
        warehouse_id = cell_text(row.get("warehouseId"))
        countries = split_list(row.get("countries"))
        stock = split_list(row.get("stock"))
        if not (warehouse_id and countries and stock):
            return None
        if len(countries) != len(stock):
            raise ValidationError(
                f"countries has {len(countries)} entries but stock has {len(stock)}"
            )
        return warehouse_id, {c: parse_quantity(q) for c, q in zip(countries, stock)}

    def _attribute_slots(self, row: Dict[str, Any]) -> List[Tuple[str, List[str]]]:
        """Resolve every filled attributeSlug{i}/attributeValues{i} pair to (attribute id, term ids).

        Slots naming the same attribute are merged into one entry.
        """
        resolved: Dict[str, List[str]] = {}
        for i in range(1, settings.MAX_ATTRIBUTE_SLOTS + 1):
            slug = cell_text(row.get(f"attributeSlug{i}"))
            if not slug:
                continue
            attribute_id = self.taxonomy.resolve_or_create_attribute(slug)
            term_ids = resolved.setdefault(attribute_id, [])
            for term_slug in split_list(row.get(f"attributeValues{i}")):
                term_id = self.taxonomy.resolve_or_create_term(term_slug, attribute_id)
                if term_id not in term_ids:
                    term_ids.append(term_id)
        return list(resolved.items())

    def _variation_attributes(self, row: Dict[str, Any]) -> Optional[Dict[str, str]]:
        slug = cell_text(row.get("attributeSlug1"))
        if not slug:
            return None
        terms = split_list(row.get("attributeValues1"))
        if len(terms) != 1:
            raise ValidationError(
                f"Variation rows must name exactly one term in attributeValues1, got {len(terms)}"
            )
        attribute_id = self.taxonomy.resolve_or_create_attribute(slug)
        return {attribute_id: self.taxonomy.resolve_or_create_term(terms[0], attribute_id)}

    # --- create ---

    def _create_simple(self, intent: RowIntent):
        self._create_product(intent, RowShape.SIMPLE)

    def _create_variable(self, intent: RowIntent):
        self._create_product(intent, RowShape.VARIABLE)

    def _create_product(self, intent: RowIntent, shape: RowShape):
        row = intent.row
        sku = self._allocate_sku(row)
        if shape is RowShape.VARIABLE:
            # pricing lives on the variations
            prices = {name: {} for name, _, _ in PRICE_FIELDS}
            stock = None
        else:
            prices = self._price_maps(row)
            stock = self._stock(row)
        category_ids = self.taxonomy.resolve_categories(row.get("categories"))
        manage_stock = parse_flag(row.get("manageStock"))
        allow_backorders = parse_flag(SparseUpdate(row.keys(), row).value(("allowBackorders", "backorder")))

        product = self.products.add(
            Product(
                organization_id=self.ctx.organization_id,
                tenant_id=self.ctx.tenant_id,
                title=cell_text(row.get("title")),
                description=sanitize(cell_text(row.get("description"))),
                image=cell_text(row.get("image")) or None,
                sku=sku,
                status=_status(row.get("published")),
                product_type=shape.value,
                manage_stock=True if manage_stock is None else manage_stock,
                allow_backorders=bool(allow_backorders),
                stock_status="managed",
                **prices,
            )
        )
        self.products.assign_categories(product.id, category_ids)
        for attribute_id, term_ids in self._attribute_slots(row):
            self.products.add_attribute_values(product.id, [(attribute_id, t) for t in term_ids])
        if stock:
            warehouse_id, quantities = stock
            self.products.insert_stock(product.id, warehouse_id, quantities)
        intent.product = product

    def _create_variation(self, intent: RowIntent):
        row = intent.row
        parent = intent.parent
        sku = self._allocate_sku(row)
        prices = self._price_maps(row)
        attributes = self._variation_attributes(row) or {}
        stock = self._stock(row)

        variation = self.products.add(
            ProductVariation(
                product_id=parent.id,
                sku=sku,
                image=cell_text(row.get("image")) or None,
                attributes=attributes,
                **prices,
            )
        )
        if stock:
            warehouse_id, quantities = stock
            self.products.insert_stock(parent.id, warehouse_id, quantities, variation_id=variation.id)
        intent.variation = variation

    # --- update ---

    def _update_product(self, intent: RowIntent):
        product = intent.product
        row = intent.row
        patch = SparseUpdate(self.headers, row)

        fields = patch.collect(PRODUCT_FIELDS)
        if intent.shape is RowShape.VARIABLE:
            if product.product_type != RowShape.VARIABLE.value:
                fields.update({name: {} for name, _, _ in PRICE_FIELDS})
        else:
            fields.update(patch.collect(PRICE_FIELDS))

        row_id = cell_text(row.get("id"))
        new_sku = cell_text(row.get("sku"))
        if row_id not in ("", NO_ID) and new_sku and new_sku != product.sku:
            if self._sku_taken(new_sku, exclude_product_id=product.id):
                raise ConflictError(f"SKU already exists: {new_sku}")
            fields["sku"] = new_sku

        if fields:
            self.products.update(product, fields)

        if patch.present("categories"):
            category_ids = self.taxonomy.resolve_categories(row.get("categories"))
            self.products.replace_categories(product.id, category_ids)

        for attribute_id, term_ids in self._attribute_slots(row):
            self.products.clear_attribute_values(product.id, attribute_id)
            self.products.add_attribute_values(product.id, [(attribute_id, t) for t in term_ids])

        stock = self._stock(row)
        if stock:
            warehouse_id, quantities = stock
            if intent.shape is RowShape.VARIABLE:
                self.products.set_variation_stock(product.id, warehouse_id, quantities)
            else:
                self.products.set_stock(product.id, warehouse_id, quantities)

    def _update_variation(self, intent: RowIntent):
        variation = intent.variation
        row = intent.row
        patch = SparseUpdate(self.headers, row)

        fields = patch.collect(VARIATION_FIELDS)
        attributes = self._variation_attributes(row)
        if attributes is not None:
            fields["attributes"] = attributes

        row_id = cell_text(row.get("id"))
        new_sku = cell_text(row.get("sku"))
        if row_id not in ("", NO_ID) and new_sku and new_sku != variation.sku:
            if self._sku_taken(new_sku):
                raise ConflictError(f"SKU already exists: {new_sku}")
            fields["sku"] = new_sku

        if fields:
            self.products.update(variation, fields)

        stock = self._stock(row)
        if stock:
            warehouse_id, quantities = stock
            self.products.set_stock(
                intent.parent.id, warehouse_id, quantities, variation_id=variation.id
            )
