# support_agent/seed_db.py
from __future__ import annotations
import argparse
from pathlib import Path

from support_agent.db import connect, init_db, exec_many, DEFAULT_DB_PATH

# (name, pin, [(order_number, order_date, product, qty, status, estimated_shipping_date, shipped_date)])
CUSTOMERS = [
    ("Jane Doe", "1234", [
        ("ORD001", "2025-09-10", "Wireless Headphones", 1, "processing", "2025-09-27", None),
        ("ORD002", "2025-08-20", "Bluetooth Speaker", 1, "delivered", "2025-08-22", "2025-08-22"),
        ("ORD003", "2025-09-18", "Smart Watch", 1, "in_transit", "2025-09-20", "2025-09-21"),
    ]),
    ("John Smith", "5678", [
        ("ORD004", "2025-09-15", "Laptop Stand", 2, "processing", "2025-09-28", None),
        ("ORD005", "2025-09-01", "Wireless Mouse", 1, "delivered", "2025-09-03", "2025-09-03"),
    ]),
    ("Elena Garcia", "4321", [
        ("ORD006", "2025-07-30", "Keyboard", 1, "delivered", "2025-08-01", "2025-08-02"),
        ("ORD007", "2025-09-22", "Phone Case", 3, "processing", "2025-09-26", None),
    ]),
]

def reset_db(db_path: Path) -> None:
    if db_path.exists():
        db_path.unlink()

def seed(db_path: Path = DEFAULT_DB_PATH, quiet: bool = False) -> None:
    db_path = Path(db_path)
    reset_db(db_path)
    conn = connect(db_path)
    try:
        init_db(conn)

        for name, pin, orders in CUSTOMERS:
            cur = conn.execute(
                "INSERT INTO customers(name, name_key, pin) VALUES (?, ?, ?)",
                (name, name.lower(), pin),
            )
            customer_id = cur.lastrowid
            exec_many(
                conn,
                "INSERT INTO orders(order_number, customer_id, order_date, product_name, quantity, status, "
                "estimated_shipping_date, shipped_date) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                [(num, customer_id, d, product, qty, status, est, shipped)
                 for num, d, product, qty, status, est, shipped in orders],
            )
        conn.commit()
    finally:
        conn.close()

    if not quiet:
        print(f"✅ Seeded DB at: {db_path}")

def main():
    p = argparse.ArgumentParser(description="Reset and seed the demo customer/order database.")
    p.add_argument("--db", type=Path, default=DEFAULT_DB_PATH)
    args = p.parse_args()
    seed(args.db)

if __name__ == "__main__":
    main()
