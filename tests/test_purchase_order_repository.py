import unittest
from datetime import datetime, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

from supply_dashboard import create_app
from supply_dashboard.config import Config
from supply_dashboard.db import close_db, get_db
from supply_dashboard.demo_data import add_department, add_order_chain, add_purchase_order, add_rfq, add_vendor
from supply_dashboard.domain.contracts import COMPLETED_STATUSES, OrderFilter
from supply_dashboard.errors import DataSourceError
from supply_dashboard.infrastructure.repositories import PurchaseOrderRepository
from supply_dashboard.orders.time_buckets import monthly_ranges
from tests.helpers.fake_orders import utc
from tests.helpers.temp_db import TempDbSandbox


NOW = utc(2026, 3, 18, 12)


class PurchaseOrderRepositoryTest(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_db = TempDbSandbox(prefix="po_repository")
        self.app = create_app(self._temp_db.make_config(Config, TESTING=True))
        self._ctx = self.app.app_context()
        self._ctx.push()
        self.db = get_db()
        self.repository = PurchaseOrderRepository(self.db)

    def tearDown(self) -> None:
        close_db()
        self._ctx.pop()
        self._temp_db.cleanup()

    def test_snapshot_resolves_department_and_vendor(self) -> None:
        production = add_department(self.db, "Production")
        vendor = add_vendor(self.db, "Najd Tools")
        due = NOW + timedelta(days=4)
        add_order_chain(
            self.db,
            created_at=NOW,
            department_id=production,
            needed_by=due,
            priority="Urgent",
            status="partial",
            total="1250.75",
            vendor_id=vendor,
        )
        self.db.commit()

        (order,) = self.repository.query_orders(OrderFilter(priority="Urgent"))

        self.assertEqual(order.department_id, production)
        self.assertEqual(order.department_name, "Production")
        self.assertEqual(order.vendor_name, "Najd Tools")
        self.assertEqual(order.status, "PARTIAL")
        self.assertEqual(order.total, Decimal("1250.75"))
        self.assertEqual(order.created_at, NOW)
        self.assertEqual(order.needed_by, due)
        self.assertIsNotNone(order.created_at.tzinfo)

    def test_missing_links_fall_back_to_unassigned(self) -> None:
        add_order_chain(self.db, created_at=NOW, priority="Urgent")
        orphan_rfq = add_rfq(self.db, request_id=None)
        add_purchase_order(self.db, rfq_id=orphan_rfq, created_at=NOW, priority="Urgent")
        self.db.commit()

        orders = self.repository.query_orders(OrderFilter(priority="Urgent"))

        self.assertEqual(len(orders), 2)
        for order in orders:
            self.assertIsNone(order.department_id)
            self.assertEqual(order.department_name, "Unassigned")
            self.assertEqual(order.vendor_name, "Unassigned")
            self.assertIsNone(order.needed_by)

    def test_created_bounds_are_inclusive(self) -> None:
        march = monthly_ranges(NOW, 1)[0]
        add_order_chain(self.db, created_at=utc(2026, 3, 1), priority="Urgent")
        add_order_chain(self.db, created_at=utc(2026, 3, 31, 23, 59, 59), priority="Urgent")
        add_order_chain(self.db, created_at=utc(2026, 2, 28, 23, 59, 59), priority="Urgent")
        add_order_chain(self.db, created_at=utc(2026, 4, 1), priority="Urgent")
        add_order_chain(self.db, created_at=utc(2026, 3, 10), priority="Normal")
        self.db.commit()

        orders = self.repository.query_orders(
            OrderFilter(priority="Urgent", created_from=march.start, created_to=march.end)
        )

        self.assertEqual([order.created_at for order in orders], [utc(2026, 3, 1), utc(2026, 3, 31, 23, 59, 59)])

    def test_bounds_in_other_timezones_compare_in_utc(self) -> None:
        riyadh = ZoneInfo("Asia/Riyadh")
        add_order_chain(self.db, created_at=utc(2026, 2, 28, 22), priority="Urgent")
        add_order_chain(self.db, created_at=utc(2026, 2, 28, 20), priority="Urgent")
        self.db.commit()

        orders = self.repository.query_orders(
            OrderFilter(priority="Urgent", created_from=datetime(2026, 3, 1, tzinfo=riyadh))
        )

        self.assertEqual([order.created_at for order in orders], [utc(2026, 2, 28, 22)])

    def test_status_filter_and_counts(self) -> None:
        for status in ("OPEN", "PARTIAL", "RECEIVED", "CLOSED", "CANCELLED"):
            add_order_chain(self.db, created_at=NOW, priority="Urgent", status=status)
        add_order_chain(self.db, created_at=NOW, priority="High", status="CLOSED")
        self.db.commit()

        self.assertEqual(self.repository.count_orders(OrderFilter()), 6)
        self.assertEqual(self.repository.count_orders(OrderFilter(priority="Urgent", statuses=COMPLETED_STATUSES)), 2)
        self.assertEqual(
            {order.status for order in self.repository.query_orders(OrderFilter(statuses=COMPLETED_STATUSES))},
            {"RECEIVED", "CLOSED"},
        )

    def test_needed_by_required(self) -> None:
        add_order_chain(self.db, created_at=NOW, priority="Urgent", status="CLOSED", needed_by=NOW)
        add_order_chain(self.db, created_at=NOW, priority="Urgent", status="CLOSED")
        self.db.commit()

        orders = self.repository.query_orders(OrderFilter(priority="Urgent", needed_by_required=True))

        self.assertEqual(len(orders), 1)
        self.assertEqual(orders[0].needed_by, NOW)

    def test_count_departments(self) -> None:
        self.assertEqual(self.repository.count_departments(), 0)
        for name in ("Maintenance", "Production", "Quality"):
            add_department(self.db, name)
        self.db.commit()

        self.assertEqual(self.repository.count_departments(), 3)

    def test_driver_failure_becomes_data_source_error(self) -> None:
        self.db.execute("DROP TABLE purchase_orders")
        self.db.commit()

        with self.assertRaises(DataSourceError) as ctx:
            self.repository.query_orders(OrderFilter())

        self.assertEqual(ctx.exception.code, "data_source_unavailable")
        self.assertIn("query_orders", ctx.exception.details or "")

    def test_malformed_order_timestamp_becomes_data_source_error(self) -> None:
        order_id = add_order_chain(self.db, created_at=NOW, priority="Urgent")
        self.db.execute("UPDATE purchase_orders SET updated_at = ? WHERE id = ?", ("not-a-date", order_id))
        self.db.commit()

        with self.assertRaises(DataSourceError) as ctx:
            self.repository.query_orders(OrderFilter(priority="Urgent"))

        self.assertEqual(ctx.exception.code, "data_source_unavailable")
        self.assertIn("updated_at", ctx.exception.details or "")

    def test_malformed_due_date_reads_as_missing(self) -> None:
        request_due = NOW + timedelta(days=1)
        add_order_chain(self.db, created_at=NOW, needed_by=request_due, priority="Urgent")
        self.db.execute("UPDATE requests SET needed_by = ?", ("someday",))
        self.db.commit()

        (order,) = self.repository.query_orders(OrderFilter(priority="Urgent"))

        self.assertIsNone(order.needed_by)


if __name__ == "__main__":
    unittest.main()
