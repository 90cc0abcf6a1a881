import uuid
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.config import settings
from app.models.attribute import ProductAttributeValue
from app.models.category import ProductCategoryAssignment
from app.models.product import Product, ProductVariation
from app.models.warehouse_stock import WarehouseStock


class ProductRepository:
    """Store access for products and the rows hanging off them, scoped to one organization."""

    def __init__(self, db: Session, organization_id: str, tenant_id: Optional[str] = None):
        self.db = db
        self.organization_id = organization_id
        self.tenant_id = tenant_id

    # --- lookups ---

    def get_by_id(self, product_id: str) -> Optional[Product]:
        return (
            self.db.query(Product)
            .filter(Product.id == product_id, Product.organization_id == self.organization_id)
            .first()
        )

    def get_by_sku(self, sku: str) -> Optional[Product]:
        return (
            self.db.query(Product)
            .filter(Product.sku == sku, Product.organization_id == self.organization_id)
            .first()
        )

    def sku_exists(self, sku: str, exclude_id: Optional[str] = None) -> bool:
        qry = self.db.query(Product.id).filter(
            Product.sku == sku, Product.organization_id == self.organization_id
        )
        if exclude_id:
            qry = qry.filter(Product.id != exclude_id)
        return qry.first() is not None

    def get_variation(self, product_id: str, sku: str) -> Optional[ProductVariation]:
        return (
            self.db.query(ProductVariation)
            .filter(ProductVariation.product_id == product_id, ProductVariation.sku == sku)
            .first()
        )

    def variation_sku_exists(self, sku: str) -> bool:
        """True when any variation of any product in the organization uses `sku`."""
        row = (
            self.db.query(ProductVariation.id)
            .join(Product, Product.id == ProductVariation.product_id)
            .filter(ProductVariation.sku == sku, Product.organization_id == self.organization_id)
            .first()
        )
        return row is not None

    def generate_sku(self, taken=None) -> str:
        """Random ``SKU-xxxxxxxx`` not yet used by any product of the organization."""
        while True:
            candidate = f"{settings.SKU_PREFIX}{uuid.uuid4().hex[:8]}"
            if taken is not None and taken(candidate):
                continue
            if not self.sku_exists(candidate):
                return candidate

    # --- writes ---

    def add(self, obj):
        self.db.add(obj)
        self.db.flush()
        return obj

    def update(self, obj, fields: Dict[str, object]):
        for key, value in fields.items():
            setattr(obj, key, value)
        self.db.flush()
        return obj

    def category_ids_for(self, product_id: str) -> List[str]:
        rows = (
            self.db.query(ProductCategoryAssignment.category_id)
            .filter(ProductCategoryAssignment.product_id == product_id)
            .all()
        )
        return [r[0] for r in rows]

    def assign_categories(self, product_id: str, category_ids: Iterable[str]):
        for cid in category_ids:
            self.db.add(ProductCategoryAssignment(product_id=product_id, category_id=cid))
        self.db.flush()

    def replace_categories(self, product_id: str, category_ids: Iterable[str]):
        self.db.query(ProductCategoryAssignment).filter(
            ProductCategoryAssignment.product_id == product_id
        ).delete()
        self.assign_categories(product_id, category_ids)

    def attribute_values_for(self, product_id: str) -> List[Tuple[str, str]]:
        rows = (
            self.db.query(ProductAttributeValue.attribute_id, ProductAttributeValue.term_id)
            .filter(ProductAttributeValue.product_id == product_id)
            .all()
        )
        return [(r[0], r[1]) for r in rows]

    def clear_attribute_values(self, product_id: str, attribute_id: str):
        self.db.query(ProductAttributeValue).filter(
            ProductAttributeValue.product_id == product_id,
            ProductAttributeValue.attribute_id == attribute_id,
        ).delete()
        self.db.flush()

    def add_attribute_values(self, product_id: str, pairs: Iterable[Tuple[str, str]]):
        seen = set()
        for attribute_id, term_id in pairs:
            if (attribute_id, term_id) in seen:
                continue
            seen.add((attribute_id, term_id))
            self.db.add(
                ProductAttributeValue(
                    product_id=product_id, attribute_id=attribute_id, term_id=term_id
                )
            )
        self.db.flush()

    # --- warehouse stock ---

    def _stock_query(self, product_id: str, warehouse_id: str, country: str, variation_id: Optional[str]):
        qry = self.db.query(WarehouseStock).filter(
            WarehouseStock.product_id == product_id,
            WarehouseStock.warehouse_id == warehouse_id,
            WarehouseStock.country == country,
        )
        if variation_id is None:
            return qry.filter(WarehouseStock.variation_id.is_(None))
        return qry.filter(WarehouseStock.variation_id == variation_id)

    def insert_stock(
        self,
        product_id: str,
        warehouse_id: str,
        quantities: Dict[str, int],
        variation_id: Optional[str] = None,
    ) -> List[WarehouseStock]:
        rows = []
        for country, qty in quantities.items():
            row = WarehouseStock(
                warehouse_id=warehouse_id,
                product_id=product_id,
                variation_id=variation_id,
                country=country,
                quantity=qty,
                organization_id=self.organization_id,
                tenant_id=self.tenant_id,
            )
            self.db.add(row)
            rows.append(row)
        self.db.flush()
        return rows

    def set_stock(
        self,
        product_id: str,
        warehouse_id: str,
        quantities: Dict[str, int],
        variation_id: Optional[str] = None,
    ):
        """Overwrite quantities in place; a key with no row yet gets one inserted."""
        missing = {}
        for country, qty in quantities.items():
            existing = self._stock_query(product_id, warehouse_id, country, variation_id).all()
            if not existing:
                missing[country] = qty
                continue
            keep, *duplicates = existing
            keep.quantity = qty
            for row in duplicates:
                self.db.delete(row)
        self.db.flush()
        if missing:
            self.insert_stock(product_id, warehouse_id, missing, variation_id=variation_id)

    def stock_for(self, product_id: str, variation_id: Optional[str] = None) -> List[WarehouseStock]:
        qry = self.db.query(WarehouseStock).filter(WarehouseStock.product_id == product_id)
        if variation_id is not None:
            qry = qry.filter(WarehouseStock.variation_id == variation_id)
        return qry.order_by(WarehouseStock.country).all()

    def set_variation_stock(self, product_id: str, warehouse_id: str, quantities: Dict[str, int]):
        """Overwrite the quantity of every variation row of a product held in `warehouse_id` per country."""
        for country, qty in quantities.items():
            self.db.query(WarehouseStock).filter(
                WarehouseStock.product_id == product_id,
                WarehouseStock.warehouse_id == warehouse_id,
                WarehouseStock.country == country,
                WarehouseStock.variation_id.isnot(None),
            ).update({WarehouseStock.quantity: qty})
        self.db.flush()
