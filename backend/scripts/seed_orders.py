#!/usr/bin/env python3
"""
Seed a few users and orders so return requests can be tried by hand, then
print a bearer token for each seeded user.

Usage:
    python scripts/seed_orders.py
    python scripts/seed_orders.py --file orders.json
"""
import argparse
import json
import os
import sys

# allow running from repo/scripts
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.db import SessionLocal, init_db
from app.models.order import Order, OrderItem
from app.models.user import User
from app.utils.security import create_access_token

USERS = [
    {"email": "admin@returnsdesk.local", "full_name": "Desk Admin", "role": "admin"},
    {"email": "ama@example.com", "first_name": "Ama", "last_name": "Mensah", "role": "customer"},
]

# orders owned by "ama@example.com" carry "owner"; the rest are guest orders
ORDERS = [
    {
        "order_number": "ORD-2024-001",
        "status": "delivered",
        "owner": "ama@example.com",
        "items": [
            {"product_name": "Kente Scarf", "quantity": 1, "unit_price_cents": 4500},
            {"product_name": "Shea Butter 250g", "quantity": 2, "unit_price_cents": 1200},
        ],
    },
    {
        "order_number": "ord-2024-002",
        "status": "shipped",
        "shipping_address": {"name": "Yaw Guest", "email": "yaw@example.com", "city": "Accra"},
        "items": [{"product_name": "Adinkra Mug", "quantity": 1, "unit_price_cents": 3000}],
    },
    {
        "order_number": "ORD-2024-003",
        "status": "cancelled",
        "shipping_address": {"full_name": "No Email"},
        "items": [{"product_name": "Woven Basket", "quantity": 1, "unit_price_cents": 8000}],
    },
]


def _user(db, entry):
    user = db.query(User).filter(User.email == entry["email"]).first()
    if user is None:
        user = User(**entry)
        db.add(user)
        db.flush()
    return user


def _order(db, entry, users):
    if db.query(Order).filter(Order.order_number == entry["order_number"]).first():
        return False
    owner = users.get(entry.get("owner"))
    order = Order(
        order_number=entry["order_number"],
        status=entry.get("status", "delivered"),
        user_id=owner.id if owner is not None else None,
        shipping_address=entry.get("shipping_address"),
    )
    total = 0
    for it in entry.get("items", []):
        qty = int(it.get("quantity", 1))
        price = int(it.get("unit_price_cents", 0))
        order.items.append(
            OrderItem(
                product_name=it["product_name"],
                quantity=qty,
                unit_price_cents=price,
                total_price_cents=qty * price,
                product_image=it.get("product_image"),
                selected_variants=it.get("selected_variants"),
            )
        )
        total += qty * price
    order.total_cents = total
    db.add(order)
    return True


def seed(users=USERS, orders=ORDERS):
    init_db()
    db = SessionLocal()
    try:
        by_email = {u["email"]: _user(db, u) for u in users}
        created = sum(1 for o in orders if _order(db, o, by_email))
        db.commit()
        print("Seeded orders:", created)
        for email, user in by_email.items():
            print(f"{email} ({user.role}): Bearer {create_access_token(user.id)}")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--file", "-f", help="JSON file with {\"users\": [...], \"orders\": [...]}")
    args = parser.parse_args()
    if args.file:
        if not os.path.exists(args.file):
            print("File not found:", args.file)
            sys.exit(1)
        with open(args.file, "r", encoding="utf-8") as f:
            data = json.load(f)
        seed(data.get("users", USERS), data.get("orders", []))
    else:
        seed()
