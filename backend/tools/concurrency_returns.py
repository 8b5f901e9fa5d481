import argparse
import concurrent.futures
import os
from collections import Counter

import requests

BASE = os.environ.get("RETURNS_BASE", "http://127.0.0.1:8000")


def create_task(i, order_number, reason):
    # vary the casing so the case-insensitive duplicate check is exercised too
    typed = order_number.upper() if i % 2 else order_number.lower()
    payload = {"order_number": typed, "reason": reason, "photos": []}
    try:
        r = requests.post(f"{BASE}/api/return-requests", json=payload, timeout=20)
        return (i, typed, r.status_code, r.text)
    except requests.RequestException as e:
        return (i, typed, "ERR", str(e))


def run(workers, order_number, reason):
    print(f"Running duplicate-create test: workers={workers}, order={order_number}")
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [ex.submit(create_task, i, order_number, reason) for i in range(workers)]
        results = [f.result() for f in futures]
    for r in results:
        print(r)
    codes = Counter(r[2] for r in results)
    print("Status codes:", dict(codes))
    if codes.get(201, 0) > 1:
        print("WARNING: more than one pending request was created")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Fire concurrent return requests for one order.")
    parser.add_argument("--order", default="ord-2024-002")
    parser.add_argument("--reason", default="wrong size")
    parser.add_argument("--workers", type=int, default=8)
    args = parser.parse_args()
    run(args.workers, args.order, args.reason)
