import io
import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="catalog-import-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ["IMPORT_LOCK_DIR"] = os.path.join(_TMP, "locks")

import pytest
from openpyxl import Workbook

from app.context import RequestContext
from app.db import SessionLocal, init_db
from app.models.tenant import Tenant
from app.services.sheet_reader import SheetRows

ORG_ID = "org-1"
USER_ID = "user-1"


def _headers(records):
    headers = []
    for rec in records:
        for key in rec:
            if key not in headers:
                headers.append(key)
    return headers


@pytest.fixture(autouse=True)
def fresh_db():
    init_db(reset=True)
    yield


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def tenant_id():
    with SessionLocal() as s:
        t = Tenant(name="Main shop", organization_id=ORG_ID, owner_user_id=USER_ID)
        s.add(t)
        s.flush()
        tid = t.id
        s.commit()
    return tid


@pytest.fixture
def ctx(tenant_id):
    return RequestContext(organization_id=ORG_ID, tenant_id=tenant_id, user_id=USER_ID)


@pytest.fixture
def auth_headers(tenant_id):
    return {"X-Organization-Id": ORG_ID, "X-User-Id": USER_ID}


@pytest.fixture
def make_rows():
    """Build SheetRows from dicts, with the template's example row in second place."""

    def _make(*records, headers=None):
        headers = headers or _headers(records)
        grid = [list(headers), ["example"] * len(headers)]
        grid += [[rec.get(h, "") for h in headers] for rec in records]
        return SheetRows(grid, sample_rows=1)

    return _make


@pytest.fixture
def xlsx_file():
    """Serialize dicts into an .xlsx upload body."""

    def _make(*records):
        headers = _headers(records)
        wb = Workbook()
        ws = wb.active
        ws.append(headers)
        ws.append(["example"] * len(headers))
        for rec in records:
            ws.append([rec.get(h) for h in headers])
        buf = io.BytesIO()
        wb.save(buf)
        return buf.getvalue()

    return _make
