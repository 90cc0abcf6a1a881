import json
import sqlite3
import sys

DB = sys.argv[1] if len(sys.argv) > 1 else "dev.db"
RUN_ID = sys.argv[2] if len(sys.argv) > 2 else None

conn = sqlite3.connect(DB)
cur = conn.cursor()

print("=== Import Runs ===")
if RUN_ID:
    cur.execute(
        "SELECT id, kind, filename, status, row_count, success_count, edit_count, errors, last_error, started_at, finished_at FROM import_runs WHERE id=?",
        (RUN_ID,),
    )
else:
    cur.execute(
        "SELECT id, kind, filename, status, row_count, success_count, edit_count, errors, last_error, started_at, finished_at FROM import_runs ORDER BY started_at DESC LIMIT 20"
    )
for r in cur.fetchall():
    errors = r[7] or "[]"
    try:
        errors = json.loads(errors) if isinstance(errors, str) else errors
    except ValueError:
        pass
    print(
        {
            "id": r[0],
            "kind": r[1],
            "filename": r[2],
            "status": r[3],
            "rows": r[4],
            "created": r[5],
            "edited": r[6],
            "errors": errors,
            "last_error": r[8],
            "started_at": r[9],
            "finished_at": r[10],
        }
    )

print("\n=== Recent Products ===")
cur.execute(
    "SELECT id, sku, product_type, status, title, updated_at FROM products ORDER BY updated_at DESC LIMIT 20"
)
for r in cur.fetchall():
    print(r)

print("\n=== Stock ===")
cur.execute(
    "SELECT p.sku, s.variation_id, s.warehouse_id, s.country, s.quantity FROM warehouse_stock s JOIN products p ON p.id = s.product_id ORDER BY p.sku, s.country LIMIT 50"
)
for r in cur.fetchall():
    print(r)

conn.close()
