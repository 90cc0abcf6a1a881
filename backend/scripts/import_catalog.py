#!/usr/bin/env python3
"""
Run a product import from a local spreadsheet, outside the HTTP layer.

The organization and user must already own a tenant. The outcome is printed as
JSON; the exit code is 1 when any row failed.

Usage:
    python scripts/import_catalog.py --file products.xlsx --organization ORG_ID --user USER_ID
"""
import argparse
import json
import os
import sys

# allow running from repo/scripts
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.config import settings
from app.context import RequestContext
from app.db import SessionLocal, init_db
from app.models.tenant import Tenant
from app.services.import_errors import ValidationError
from app.services.product_import_service import ProductImportService, organization_lock
from app.services.sheet_reader import decode_upload


def run_import(path: str, organization_id: str, user_id: str) -> dict:
    with open(path, "rb") as f:
        content = f.read()
    rows = decode_upload(content, os.path.basename(path), sample_rows=settings.IMPORT_SAMPLE_ROWS)

    db = SessionLocal()
    try:
        tenant = (
            db.query(Tenant)
            .filter(Tenant.organization_id == organization_id, Tenant.owner_user_id == user_id)
            .first()
        )
        if not tenant:
            raise SystemExit(f"No tenant found for user {user_id} in organization {organization_id}")
        ctx = RequestContext(organization_id=organization_id, tenant_id=tenant.id, user_id=user_id)
        with organization_lock(organization_id).acquire(timeout=settings.IMPORT_LOCK_TIMEOUT_SECONDS):
            outcome = ProductImportService(db, ctx).import_rows(rows)
    finally:
        db.close()

    result = outcome.as_dict()
    result["errors"] = outcome.errors
    return result


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--file", "-f", required=True, help="Path to an .xlsx or .csv product sheet")
    parser.add_argument("--organization", "-o", required=True, help="Organization id")
    parser.add_argument("--user", "-u", required=True, help="Id of the user owning the tenant")
    args = parser.parse_args()
    if not os.path.exists(args.file):
        print("File not found:", args.file)
        sys.exit(1)
    init_db()
    try:
        result = run_import(args.file, args.organization, args.user)
    except ValidationError as e:
        print("Import failed:", e)
        sys.exit(1)
    print(json.dumps(result, indent=2))
    sys.exit(1 if result["errors"] else 0)
