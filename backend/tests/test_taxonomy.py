import pytest

from app.models.attribute import ProductAttribute, ProductAttributeTerm
from app.models.category import ProductCategory
from app.repositories.taxonomy_repo import TaxonomyRepository
from app.services.import_errors import ConflictError, ValidationError
from conftest import ORG_ID


def test_category_resolution_is_idempotent(db):
    repo = TaxonomyRepository(db, ORG_ID)
    first = repo.resolve_or_create_category("garden")
    repo.reset_cache()
    second = repo.resolve_or_create_category("garden")
    assert first == second
    assert db.query(ProductCategory).count() == 1
    assert db.query(ProductCategory).one().name == "Garden"


def test_resolve_categories_dedupes_and_keeps_order(db):
    repo = TaxonomyRepository(db, ORG_ID)
    ids = repo.resolve_categories("tools, garden, tools")
    assert len(ids) == 2
    assert ids[0] == repo.resolve_or_create_category("tools")
    assert repo.resolve_categories("") == []


def test_categories_are_scoped_by_organization(db):
    ours = TaxonomyRepository(db, ORG_ID).resolve_or_create_category("tools")
    theirs = TaxonomyRepository(db, "org-2").resolve_or_create_category("tools")
    assert ours != theirs


def test_unknown_category_id_is_rejected(db):
    repo = TaxonomyRepository(db, ORG_ID)
    with pytest.raises(ValidationError, match="Invalid category IDs"):
        repo.validate_category_ids(["nope"])


def test_attribute_and_term_resolution_is_idempotent(db):
    repo = TaxonomyRepository(db, ORG_ID)
    color = repo.resolve_or_create_attribute("color")
    red = repo.resolve_or_create_term("red", color)
    repo.reset_cache()
    assert repo.resolve_or_create_attribute("color") == color
    assert repo.resolve_or_create_term("red", color) == red
    assert db.query(ProductAttribute).count() == 1
    assert db.query(ProductAttributeTerm).count() == 1


def test_term_slug_owned_by_another_attribute_conflicts(db):
    repo = TaxonomyRepository(db, ORG_ID)
    color = repo.resolve_or_create_attribute("color")
    finish = repo.resolve_or_create_attribute("finish")
    repo.resolve_or_create_term("red", color)
    with pytest.raises(ConflictError, match="another attribute"):
        repo.resolve_or_create_term("red", finish)
