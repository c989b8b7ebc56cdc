import unittest
from datetime import timedelta

from supply_dashboard.errors import DataSourceError
from supply_dashboard.orders.time_buckets import monthly_ranges
from supply_dashboard.orders.urgent import (
    aggregate_urgent_by_department,
    compute_series_for_ranges,
    compute_urgent_kpis,
    compute_urgent_status_series,
    empty_status_series,
)
from tests.helpers.fake_orders import InMemoryOrderSource, make_order, utc


NOW = utc(2026, 3, 18, 12)
YESTERDAY = NOW - timedelta(days=1)
TWO_DAYS_AGO = NOW - timedelta(days=2)

SERIES_NAMES = ["Total", "Over SLA", "Within SLA", "Completed", "Pending"]


def _series(payload) -> dict:
    return {item["name"]: item["data"] for item in payload["series"]}


class UrgentStatusSeriesTest(unittest.TestCase):
    def test_series_names_and_alignment(self) -> None:
        payload = compute_urgent_status_series(InMemoryOrderSource(), "monthly", now=NOW)

        self.assertEqual(payload["labels"], ["Oct", "Nov", "Dec", "Jan", "Feb", "Mar"])
        self.assertEqual([item["name"] for item in payload["series"]], SERIES_NAMES)
        for item in payload["series"]:
            self.assertEqual(item["data"], [0] * 6)

    def test_open_orders_without_due_date_only_count_as_pending(self) -> None:
        source = InMemoryOrderSource(
            [
                make_order(1, created_at=utc(2026, 3, 2, 9)),
                make_order(2, created_at=utc(2026, 3, 10, 14)),
                make_order(3, created_at=utc(2026, 3, 18, 10)),
            ]
        )

        series = _series(compute_urgent_status_series(source, "monthly", now=NOW))

        self.assertEqual(series["Total"][-1], 3)
        self.assertEqual(series["Completed"][-1], 0)
        self.assertEqual(series["Pending"][-1], 3)
        self.assertEqual(series["Within SLA"][-1], 0)
        self.assertEqual(series["Over SLA"][-1], 0)

    def test_closed_before_due_date_is_within_sla_and_completed(self) -> None:
        created_at = NOW - timedelta(days=3)
        source = InMemoryOrderSource(
            [
                make_order(
                    1,
                    created_at=created_at,
                    updated_at=TWO_DAYS_AGO,
                    status="CLOSED",
                    needed_by=YESTERDAY,
                )
            ]
        )

        payload = compute_urgent_status_series(source, "daily", now=NOW)
        series = _series(payload)
        index = payload["labels"].index("Mar 15")

        self.assertEqual(series["Total"][index], 1)
        self.assertEqual(series["Within SLA"][index], 1)
        self.assertEqual(series["Over SLA"][index], 0)
        self.assertEqual(series["Completed"][index], 1)
        self.assertEqual(series["Pending"][index], 0)
        self.assertEqual(sum(series["Total"]), 1)

    def test_open_past_due_date_is_over_sla_and_pending(self) -> None:
        source = InMemoryOrderSource([make_order(1, created_at=TWO_DAYS_AGO, status="OPEN", needed_by=YESTERDAY)])

        series = _series(compute_urgent_status_series(source, "weekly", now=NOW))

        self.assertEqual(series["Over SLA"][-1], 1)
        self.assertEqual(series["Within SLA"][-1], 0)
        self.assertEqual(series["Pending"][-1], 1)
        self.assertEqual(series["Completed"][-1], 0)

    def test_open_not_yet_due_is_reported_within_sla(self) -> None:
        source = InMemoryOrderSource(
            [make_order(1, created_at=TWO_DAYS_AGO, status="PARTIAL", needed_by=NOW + timedelta(days=4))]
        )

        series = _series(compute_urgent_status_series(source, "daily", now=NOW))

        self.assertEqual(sum(series["Within SLA"]), 1)
        self.assertEqual(sum(series["Pending"]), 1)

    def test_only_urgent_orders_inside_bucket_bounds_are_counted(self) -> None:
        source = InMemoryOrderSource(
            [
                make_order(1, created_at=utc(2026, 3, 1)),
                make_order(2, created_at=utc(2026, 2, 28, 23, 59, 59)),
                make_order(3, created_at=utc(2026, 3, 5), priority="High"),
                make_order(4, created_at=utc(2025, 9, 30, 23)),
            ]
        )

        payload = compute_urgent_status_series(source, "monthly", now=NOW)
        totals = _series(payload)["Total"]

        self.assertEqual(totals, [0, 0, 0, 0, 1, 1])

    def test_one_query_per_bucket(self) -> None:
        source = InMemoryOrderSource()
        ranges = monthly_ranges(NOW, 6)

        compute_series_for_ranges(source, ranges, now=NOW)

        self.assertEqual(len(source.filters), 6)
        for order_filter, time_range in zip(source.filters, ranges):
            self.assertEqual(order_filter.priority, "Urgent")
            self.assertEqual(order_filter.created_from, time_range.start)
            self.assertEqual(order_filter.created_to, time_range.end)

    def test_completed_plus_pending_equals_total(self) -> None:
        statuses = ["OPEN", "PARTIAL", "RECEIVED", "CLOSED", "CANCELLED"]
        source = InMemoryOrderSource(
            [
                make_order(idx, created_at=NOW - timedelta(days=idx), status=statuses[idx % 5], needed_by=YESTERDAY)
                for idx in range(1, 12)
            ]
        )

        series = _series(compute_urgent_status_series(source, "daily", now=NOW))

        for total, completed, pending in zip(series["Total"], series["Completed"], series["Pending"]):
            self.assertEqual(total, completed + pending)

    def test_source_failure_propagates(self) -> None:
        with self.assertRaises(DataSourceError):
            compute_urgent_status_series(InMemoryOrderSource(fail=True), "monthly", now=NOW)

    def test_empty_payload_shape(self) -> None:
        payload = empty_status_series()
        self.assertEqual(payload["labels"], [])
        self.assertEqual([item["name"] for item in payload["series"]], SERIES_NAMES)


class UrgentByDepartmentTest(unittest.TestCase):
    def test_groups_by_department_in_first_seen_order(self) -> None:
        source = InMemoryOrderSource(
            [
                make_order(1, created_at=NOW, department_id=1, department_name="A"),
                make_order(2, created_at=NOW, department_id=1, department_name="A"),
                make_order(3, created_at=NOW),
            ]
        )

        self.assertEqual(aggregate_urgent_by_department(source), {"labels": ["A", "Unassigned"], "data": [2, 1]})

    def test_counts_sum_to_urgent_orders(self) -> None:
        source = InMemoryOrderSource(
            [
                make_order(1, created_at=NOW, department_name="Production"),
                make_order(2, created_at=NOW, department_name="Maintenance"),
                make_order(3, created_at=NOW, department_name="Production"),
                make_order(4, created_at=NOW, department_name="Quality", priority="Low"),
            ]
        )

        payload = aggregate_urgent_by_department(source)

        self.assertEqual(payload["labels"], ["Production", "Maintenance"])
        self.assertEqual(sum(payload["data"]), 3)


class UrgentKpisTest(unittest.TestCase):
    def test_no_department_with_urgent_orders(self) -> None:
        source = InMemoryOrderSource([make_order(1, created_at=NOW)], departments=5)

        kpis = compute_urgent_kpis(source)

        self.assertEqual(kpis["urgentPerDept"], {"current": 0, "totalDepts": 5})

    def test_counts_and_on_time_percentage(self) -> None:
        source = InMemoryOrderSource(
            [
                make_order(1, created_at=NOW, status="OPEN", department_id=1),
                make_order(2, created_at=NOW, status="PARTIAL", department_id=1),
                make_order(
                    3,
                    created_at=TWO_DAYS_AGO,
                    updated_at=TWO_DAYS_AGO,
                    status="CLOSED",
                    needed_by=YESTERDAY,
                    department_id=2,
                ),
                make_order(4, created_at=TWO_DAYS_AGO, updated_at=NOW, status="RECEIVED", needed_by=YESTERDAY),
                make_order(5, created_at=TWO_DAYS_AGO, status="RECEIVED"),
                make_order(6, created_at=NOW, status="CANCELLED", department_id=3),
                make_order(7, created_at=NOW, status="OPEN", priority="High", department_id=4),
            ],
            departments=6,
        )

        kpis = compute_urgent_kpis(source)

        self.assertEqual(kpis["openUrgent"], 2)
        self.assertEqual(kpis["closedUrgent"], 3)
        self.assertAlmostEqual(kpis["onTimePct"], 50.0)
        self.assertEqual(kpis["urgentPerDept"], {"current": 3, "totalDepts": 6})

    def test_on_time_is_zero_without_completed_due_dates(self) -> None:
        source = InMemoryOrderSource([make_order(1, created_at=NOW, status="CLOSED")], departments=1)

        self.assertEqual(compute_urgent_kpis(source)["onTimePct"], 0.0)

    def test_source_failure_propagates(self) -> None:
        with self.assertRaises(DataSourceError):
            compute_urgent_kpis(InMemoryOrderSource(fail=True))


if __name__ == "__main__":
    unittest.main()
