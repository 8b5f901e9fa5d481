import json
import sqlite3
import sys

DB = sys.argv[1] if len(sys.argv) > 1 else "dev.db"
ORDER_NUMBER = sys.argv[2] if len(sys.argv) > 2 else None

conn = sqlite3.connect(DB)
cur = conn.cursor()

print("=== Return Requests ===")
if ORDER_NUMBER:
    cur.execute(
        "SELECT id, order_number, status, user_id, return_authorization_number, approved_at, completed_at, created_at "
        "FROM return_requests WHERE lower(order_number)=lower(?) ORDER BY created_at DESC",
        (ORDER_NUMBER,),
    )
else:
    cur.execute(
        "SELECT id, order_number, status, user_id, return_authorization_number, approved_at, completed_at, created_at "
        "FROM return_requests ORDER BY created_at DESC LIMIT 20"
    )
for r in cur.fetchall():
    print(
        {
            "id": r[0],
            "order_number": r[1],
            "status": r[2],
            "user_id": r[3],
            "ra": r[4],
            "approved_at": r[5],
            "completed_at": r[6],
            "created_at": r[7],
        }
    )

print("\n=== RA Sequences ===")
cur.execute("SELECT day, last_value FROM ra_sequences ORDER BY day DESC LIMIT 10")
for r in cur.fetchall():
    print(r)

print("\n=== Admin Logs ===")
cur.execute(
    "SELECT action, user_id, role, status_code, duration_ms, ip_address, metadata, created_at "
    "FROM admin_logs ORDER BY created_at DESC LIMIT 20"
)
for r in cur.fetchall():
    meta = r[6]
    try:
        meta = json.loads(meta) if isinstance(meta, str) else meta
    except ValueError:
        pass
    print(
        {
            "action": r[0],
            "user_id": r[1],
            "role": r[2],
            "status": r[3],
            "duration_ms": r[4],
            "ip": r[5],
            "metadata": meta,
            "created_at": r[7],
        }
    )

conn.close()
