"""Demo rows for local dashboards and tests.

Master data is normally maintained elsewhere; these helpers only write the
minimum the aggregates read.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from supply_dashboard.infrastructure.repositories.base import BaseRepository


def _inserted_id(cursor) -> int:
    row = cursor.fetchall()[0]
    return int(row["id"] if isinstance(row, dict) else row[0])


def _timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return BaseRepository.to_db_timestamp(value)


def add_department(db, name: str) -> int:
    cursor = db.execute("INSERT INTO departments (name) VALUES (?) RETURNING id", (name,))
    return _inserted_id(cursor)


def add_vendor(db, name: str) -> int:
    cursor = db.execute("INSERT INTO vendors (name_en) VALUES (?) RETURNING id", (name,))
    return _inserted_id(cursor)


def add_request(db, *, department_id: int | None = None, needed_by: datetime | None = None, number: str | None = None) -> int:
    cursor = db.execute(
        "INSERT INTO requests (number, department_id, needed_by) VALUES (?, ?, ?) RETURNING id",
        (number, department_id, _timestamp(needed_by)),
    )
    return _inserted_id(cursor)


def add_rfq(db, *, request_id: int | None) -> int:
    cursor = db.execute("INSERT INTO rfqs (request_id) VALUES (?) RETURNING id", (request_id,))
    return _inserted_id(cursor)


def add_purchase_order(
    db,
    *,
    rfq_id: int,
    created_at: datetime,
    updated_at: datetime | None = None,
    priority: str = "Normal",
    status: str = "OPEN",
    total: Decimal | float | int = 0,
    vendor_id: int | None = None,
    number: str | None = None,
) -> int:
    cursor = db.execute(
        """
        INSERT INTO purchase_orders (number, rfq_id, vendor_id, priority, status, total, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        RETURNING id
        """,
        (
            number,
            rfq_id,
            vendor_id,
            priority,
            status,
            str(Decimal(str(total))),
            _timestamp(created_at),
            _timestamp(updated_at or created_at),
        ),
    )
    return _inserted_id(cursor)


def add_order_chain(
    db,
    *,
    created_at: datetime,
    department_id: int | None = None,
    needed_by: datetime | None = None,
    **order_fields,
) -> int:
    request_id = add_request(db, department_id=department_id, needed_by=needed_by)
    rfq_id = add_rfq(db, request_id=request_id)
    return add_purchase_order(db, rfq_id=rfq_id, created_at=created_at, **order_fields)


def seed_demo_data(db, now: datetime | None = None) -> dict:
    now = now or datetime.now(timezone.utc)
    departments = {name: add_department(db, name) for name in ("Maintenance", "Production", "Quality", "Logistics")}
    vendors = {name: add_vendor(db, name) for name in ("Gulf Industrial Supply", "Red Sea Bearings", "Najd Tools")}

    plan = [
        # (days ago, department, vendor, priority, status, total, due in days from creation, closed after days)
        (2, "Maintenance", "Red Sea Bearings", "Urgent", "OPEN", 1200, 5, None),
        (5, "Production", "Gulf Industrial Supply", "Urgent", "PARTIAL", 8400, 2, None),
        (12, "Maintenance", "Najd Tools", "Urgent", "CLOSED", 640, 6, 3),
        (20, "Quality", "Red Sea Bearings", "Urgent", "RECEIVED", 2300, 4, 9),
        (33, None, "Gulf Industrial Supply", "Urgent", "OPEN", 990, None, None),
        (41, "Production", "Najd Tools", "High", "RECEIVED", 15600, 10, 8),
        (58, "Logistics", "Gulf Industrial Supply", "Normal", "CLOSED", 4300, 14, 20),
        (75, "Production", "Red Sea Bearings", "Urgent", "CLOSED", 7150, 3, 2),
        (96, "Maintenance", "Najd Tools", "Low", "CANCELLED", 310, None, None),
        (120, "Quality", "Gulf Industrial Supply", "Urgent", "RECEIVED", 5200, 7, 12),
    ]

    order_ids = []
    for days_ago, department, vendor, priority, status, total, due_days, closed_after in plan:
        created_at = now - timedelta(days=days_ago)
        needed_by = created_at + timedelta(days=due_days) if due_days is not None else None
        updated_at = created_at + timedelta(days=closed_after) if closed_after is not None else created_at
        order_ids.append(
            add_order_chain(
                db,
                created_at=created_at,
                updated_at=updated_at,
                department_id=departments.get(department) if department else None,
                needed_by=needed_by,
                priority=priority,
                status=status,
                total=total,
                vendor_id=vendors[vendor],
            )
        )
    db.commit()
    return {
        "departments": len(departments),
        "vendors": len(vendors),
        "purchase_orders": len(order_ids),
    }
