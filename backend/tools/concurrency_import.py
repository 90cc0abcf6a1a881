import os
import sys
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import requests
import concurrent.futures
import argparse
import json

BASE = os.environ.get("CATALOG_IMPORT_BASE", "http://127.0.0.1:8000")


def import_task(i, path, headers):
    with open(path, "rb") as fh:
        files = {"file": (os.path.basename(path), fh.read())}
    try:
        r = requests.post(f"{BASE}/api/products/import", files=files, headers=headers, timeout=120)
        return (i, r.status_code, r.headers.get("X-Import-Run-Id"), r.text)
    except Exception as e:
        return (i, "ERR", None, str(e))


def _created(result):
    if result[1] not in (201, 207):
        return 0
    return json.loads(result[3]).get("successCount", 0)


def run_concurrent(workers, path, headers):
    print(f"Running import test: workers={workers}, file={path}")
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [ex.submit(import_task, i, path, headers) for i in range(workers)]
        results = [f.result() for f in futures]
    print("Results:")
    for r in results:
        print(r)
    # the same sheet uploaded N times must create each product once
    print("Products created across runs:", sum(_created(r) for r in results))
    print("Lock timeouts (409):", sum(1 for r in results if r[1] == 409))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Upload the same sheet concurrently for one organization.")
    parser.add_argument("file")
    parser.add_argument("--org", required=True)
    parser.add_argument("--user", required=True)
    parser.add_argument("--workers", type=int, default=4)
    args = parser.parse_args()

    run_concurrent(args.workers, args.file, {"X-Organization-Id": args.org, "X-User-Id": args.user})
