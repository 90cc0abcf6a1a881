import importlib.util
import os

import pytest

from app.db import SessionLocal
from app.models.product import Product
from conftest import ORG_ID, USER_ID

SCRIPT = os.path.join(os.path.dirname(__file__), "..", "scripts", "import_catalog.py")


def _load_script():
    spec = importlib.util.spec_from_file_location("import_catalog", SCRIPT)
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


def test_cli_import_reports_outcome(tenant_id, tmp_path):
    sheet = tmp_path / "products.csv"
    sheet.write_text("sku,title,regularPrice\nEX,Example,US:1\nA1,Widget,US:10\nB1,Broken,US10\n")

    result = _load_script().run_import(str(sheet), ORG_ID, USER_ID)

    assert result["rowCount"] == 2
    assert result["successCount"] == 1
    assert result["errors"][0]["row"] == 4
    with SessionLocal() as s:
        assert [p.sku for p in s.query(Product).all()] == ["A1"]


def test_cli_import_needs_a_tenant(tmp_path):
    sheet = tmp_path / "products.csv"
    sheet.write_text("sku\nEX\nA1\n")
    with pytest.raises(SystemExit):
        _load_script().run_import(str(sheet), ORG_ID, "nobody")
