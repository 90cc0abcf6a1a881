from fastapi.testclient import TestClient

from app.db import SessionLocal
from app.main import app
from app.models.import_run import ImportRun
from app.models.product import Product
from app.services.product_import_service import organization_lock
from conftest import ORG_ID

client = TestClient(app)

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _upload(content, headers, filename="catalog.xlsx", content_type=XLSX):
    return client.post(
        "/api/products/import",
        files={"file": (filename, content, content_type)},
        headers=headers,
    )


def test_full_success_returns_201(auth_headers, xlsx_file):
    res = _upload(
        xlsx_file(
            {"sku": "A1", "title": "Hammer", "regularPrice": "US:10", "published": 1},
            {"sku": "B1", "title": "Saw", "categories": "tools"},
        ),
        auth_headers,
    )
    assert res.status_code == 201, res.text
    assert res.json() == {"rowCount": 2, "successCount": 2, "editCount": 0}
    assert res.headers["X-Import-Run-Id"]

    with SessionLocal() as s:
        assert s.query(Product).count() == 2


def test_partial_success_returns_207_with_errors(auth_headers, xlsx_file):
    res = _upload(
        xlsx_file(
            {"sku": "A1", "regularPrice": "US:10"},
            {"sku": "B1", "regularPrice": "US10"},
        ),
        auth_headers,
    )
    assert res.status_code == 207
    body = res.json()
    assert body["successCount"] == 1
    assert body["errors"][0]["row"] == 4


def test_all_rows_failing_returns_500(auth_headers, xlsx_file):
    res = _upload(
        xlsx_file({"sku": "V1", "productType": "variation", "parent": "MISSING"}),
        auth_headers,
    )
    assert res.status_code == 500
    assert res.json() == {
        "rowErrors": [{"row": 3, "error": "Parent product with SKU 'MISSING' not found"}]
    }


def test_missing_file_returns_400(auth_headers):
    res = client.post("/api/products/import", headers=auth_headers)
    assert res.status_code == 400
    assert res.json() == {"error": "No file provided under key 'file'"}


def test_header_only_sheet_returns_400(auth_headers, xlsx_file):
    from io import BytesIO

    from openpyxl import Workbook

    wb = Workbook()
    wb.active.append(["sku", "title"])
    wb.active.append(["EX", "Example"])
    buf = BytesIO()
    wb.save(buf)
    res = _upload(buf.getvalue(), auth_headers)
    assert res.status_code == 400
    assert res.json() == {"error": "File is empty"}
    assert "X-Import-Run-Id" not in res.headers


def test_missing_context_returns_401(xlsx_file):
    res = _upload(xlsx_file({"sku": "A1"}), {})
    assert res.status_code == 401


def test_unknown_tenant_returns_404(tenant_id, xlsx_file):
    res = _upload(
        xlsx_file({"sku": "A1"}),
        {"X-Organization-Id": ORG_ID, "X-User-Id": "someone-else"},
    )
    assert res.status_code == 404
    assert res.json() == {"error": "No tenant found for user"}


def test_csv_upload_is_accepted(auth_headers):
    content = b"sku,title\nEX,Example\nA1,Hammer\n"
    res = _upload(content, auth_headers, filename="catalog.csv", content_type="text/csv")
    assert res.status_code == 201
    assert res.json()["successCount"] == 1


def test_import_run_is_recorded(auth_headers, xlsx_file):
    res = _upload(
        xlsx_file({"sku": "A1"}, {"sku": "B1", "stock": "x", "warehouseId": "W1", "countries": "US"}),
        auth_headers,
    )
    run_id = res.headers["X-Import-Run-Id"]

    got = client.get(f"/api/products/import/{run_id}", headers=auth_headers)
    assert got.status_code == 200
    body = got.json()
    assert body["status"] == "partial"
    assert body["kind"] == "products"
    assert body["filename"] == "catalog.xlsx"
    assert body["rowCount"] == 2
    assert body["successCount"] == 1
    assert body["errors"][0]["row"] == 4
    assert body["finishedAt"] is not None


def test_import_run_of_other_organization_is_hidden(auth_headers, xlsx_file):
    res = _upload(xlsx_file({"sku": "A1"}), auth_headers)
    run_id = res.headers["X-Import-Run-Id"]
    with SessionLocal() as s:
        run = s.get(ImportRun, run_id)
        run.organization_id = "org-2"
        s.commit()
    assert client.get(f"/api/products/import/{run_id}", headers=auth_headers).status_code == 404


def test_concurrent_import_for_same_organization_returns_409(auth_headers, xlsx_file, monkeypatch):
    from app.config import settings

    monkeypatch.setattr(settings, "IMPORT_LOCK_TIMEOUT_SECONDS", 0.1)
    lock = organization_lock(ORG_ID)
    with lock:
        res = _upload(xlsx_file({"sku": "A1"}), auth_headers)
    assert res.status_code == 409
    run_id = res.headers["X-Import-Run-Id"]
    with SessionLocal() as s:
        assert s.get(ImportRun, run_id).status.value == "failed"
        assert s.query(Product).count() == 0
