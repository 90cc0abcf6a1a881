import logging
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy.orm import Session

from app.models.attribute import ProductAttribute, ProductAttributeTerm
from app.models.category import ProductCategory
from app.services.cell_formats import split_list
from app.services.import_errors import ConflictError, ValidationError

log = logging.getLogger("catalog_import")


def display_name(slug: str) -> str:
    return slug[:1].upper() + slug[1:]


class TaxonomyRepository:
    """
    Resolve category, attribute and term slugs to ids for one organization,
    creating the entity on a lookup miss.

    Resolved ids are memoized for the lifetime of the repository (one import
    batch). Call reset_cache() after a rolled-back row so ids created inside
    it are not handed out again.
    """

    def __init__(self, db: Session, organization_id: str):
        self.db = db
        self.organization_id = organization_id
        self._categories: Dict[str, str] = {}
        self._attributes: Dict[str, str] = {}
        self._terms: Dict[str, ProductAttributeTerm] = {}

    def reset_cache(self):
        self._categories.clear()
        self._attributes.clear()
        self._terms.clear()

    # --- categories ---

    def resolve_or_create_category(self, slug: str) -> str:
        if slug in self._categories:
            return self._categories[slug]
        cat = (
            self.db.query(ProductCategory)
            .filter(
                ProductCategory.organization_id == self.organization_id,
                ProductCategory.slug == slug,
            )
            .first()
        )
        if not cat:
            cat = ProductCategory(
                organization_id=self.organization_id,
                name=display_name(slug),
                slug=slug,
                image=None,
                order=0,
                parent_id=None,
            )
            self.db.add(cat)
            self.db.flush()
            log.debug("Created category slug=%r id=%s", slug, cat.id)
        self._categories[slug] = cat.id
        return cat.id

    def category_ids(self) -> Set[str]:
        rows = (
            self.db.query(ProductCategory.id)
            .filter(ProductCategory.organization_id == self.organization_id)
            .all()
        )
        return {r[0] for r in rows}

    def validate_category_ids(self, ids: Iterable[str]):
        valid = self.category_ids()
        bad = [cid for cid in ids if cid not in valid]
        if bad:
            raise ValidationError(f"Invalid category IDs: {', '.join(bad)}")

    def resolve_categories(self, cell) -> List[str]:
        """Resolve a comma separated slug list; duplicates collapse, order is kept."""
        ids: List[str] = []
        for slug in split_list(cell):
            cid = self.resolve_or_create_category(slug)
            if cid not in ids:
                ids.append(cid)
        if ids:
            self.validate_category_ids(ids)
        return ids

    # --- attributes and terms ---

    def resolve_or_create_attribute(self, slug: str) -> str:
        if slug in self._attributes:
            return self._attributes[slug]
        attr = (
            self.db.query(ProductAttribute)
            .filter(
                ProductAttribute.organization_id == self.organization_id,
                ProductAttribute.slug == slug,
            )
            .first()
        )
        if not attr:
            attr = ProductAttribute(
                organization_id=self.organization_id,
                name=display_name(slug),
                slug=slug,
            )
            self.db.add(attr)
            self.db.flush()
            log.debug("Created attribute slug=%r id=%s", slug, attr.id)
        self._attributes[slug] = attr.id
        return attr.id

    def get_term_by_slug(self, slug: str) -> Optional[ProductAttributeTerm]:
        return (
            self.db.query(ProductAttributeTerm)
            .filter(
                ProductAttributeTerm.organization_id == self.organization_id,
                ProductAttributeTerm.slug == slug,
            )
            .first()
        )

    def resolve_or_create_term(self, slug: str, attribute_id: str) -> str:
        """
        Term slugs are unique across the whole organization. A slug already
        used by a term of a different attribute is a conflict.
        """
        term = self._terms.get(slug) or self.get_term_by_slug(slug)
        if not term:
            term = ProductAttributeTerm(
                attribute_id=attribute_id,
                organization_id=self.organization_id,
                name=display_name(slug),
                slug=slug,
            )
            self.db.add(term)
            self.db.flush()
            log.debug("Created term slug=%r attribute=%s id=%s", slug, attribute_id, term.id)
        elif term.attribute_id != attribute_id:
            raise ConflictError(
                f"Term '{slug}' already belongs to another attribute"
            )
        self._terms[slug] = term
        return term.id
