"""Urgent purchase order aggregates for the orders dashboard.

Every function takes the order source explicitly and never reads the clock
itself; callers pass ``now``. Source failures propagate unchanged.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Sequence

from supply_dashboard.domain.contracts import (
    COMPLETED_STATUSES,
    OPEN_STATUSES,
    URGENT_PRIORITY,
    OrderFilter,
    OrderSource,
    SeriesPayload,
    TimeRange,
)
from supply_dashboard.orders.sla import OVER_SLA, WITHIN_SLA, classify_order, is_completed, on_time_pct
from supply_dashboard.orders.time_buckets import DEFAULT_PERIOD, ranges_for_period


STATUS_SERIES = (
    ("total", "Total"),
    ("over_sla", "Over SLA"),
    ("within_sla", "Within SLA"),
    ("completed", "Completed"),
    ("pending", "Pending"),
)


def empty_status_series() -> Dict[str, Any]:
    return SeriesPayload(series=[{"name": name, "data": []} for _, name in STATUS_SERIES]).to_dict()


def _bucket_counts(orders, now: datetime) -> Dict[str, int]:
    counts = {key: 0 for key, _ in STATUS_SERIES}
    counts["total"] = len(orders)
    for order in orders:
        sla_bucket = classify_order(order, now)
        if sla_bucket == WITHIN_SLA:
            counts["within_sla"] += 1
        elif sla_bucket == OVER_SLA:
            counts["over_sla"] += 1

        if is_completed(order.status):
            counts["completed"] += 1
        else:
            counts["pending"] += 1
    return counts


def compute_series_for_ranges(
    source: OrderSource,
    ranges: Sequence[TimeRange],
    *,
    now: datetime,
) -> Dict[str, Any]:
    labels: List[str] = []
    data: Dict[str, List[int]] = {key: [] for key, _ in STATUS_SERIES}

    for time_range in ranges:
        orders = source.query_orders(
            OrderFilter(
                priority=URGENT_PRIORITY,
                created_from=time_range.start,
                created_to=time_range.end,
            )
        )
        counts = _bucket_counts(orders, now)
        labels.append(time_range.label)
        for key, _ in STATUS_SERIES:
            data[key].append(counts[key])

    return SeriesPayload(
        labels=labels,
        series=[{"name": name, "data": data[key]} for key, name in STATUS_SERIES],
    ).to_dict()


def compute_urgent_status_series(
    source: OrderSource,
    period: str = DEFAULT_PERIOD,
    *,
    now: datetime,
) -> Dict[str, Any]:
    return compute_series_for_ranges(source, ranges_for_period(period, now), now=now)


def aggregate_urgent_by_department(source: OrderSource) -> Dict[str, Any]:
    counts: Dict[str, int] = {}
    for order in source.query_orders(OrderFilter(priority=URGENT_PRIORITY)):
        counts[order.department_name] = counts.get(order.department_name, 0) + 1

    labels = list(counts)
    return {"labels": labels, "data": [counts[label] for label in labels]}


def compute_urgent_kpis(source: OrderSource) -> Dict[str, Any]:
    open_urgent = source.count_orders(OrderFilter(priority=URGENT_PRIORITY, statuses=OPEN_STATUSES))
    closed_urgent = source.count_orders(OrderFilter(priority=URGENT_PRIORITY, statuses=COMPLETED_STATUSES))
    urgent_orders = source.query_orders(OrderFilter(priority=URGENT_PRIORITY))
    total_departments = source.count_departments()

    departments = {order.department_id for order in urgent_orders if order.department_id is not None}

    completed_with_due_date = source.query_orders(
        OrderFilter(
            priority=URGENT_PRIORITY,
            statuses=COMPLETED_STATUSES,
            needed_by_required=True,
        )
    )

    return {
        "openUrgent": open_urgent,
        "closedUrgent": closed_urgent,
        "onTimePct": on_time_pct(completed_with_due_date),
        "urgentPerDept": {
            "current": len(departments),
            "totalDepts": total_departments,
        },
    }
