from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List

from supply_dashboard.domain.contracts import (
    COMPLETED_STATUSES,
    OPEN_STATUSES,
    OrderFilter,
    OrderSource,
    SeriesPayload,
)
from supply_dashboard.orders.time_buckets import month_range, monthly_ranges


NO_DEPARTMENT = "—"
SECONDS_PER_DAY = 60 * 60 * 24


def _spend_by_department(orders) -> Dict[str, Decimal]:
    totals: Dict[str, Decimal] = {}
    for order in orders:
        totals[order.department_name] = totals.get(order.department_name, Decimal("0")) + order.total
    return totals


def _top_entry(totals: Dict[str, Decimal]) -> tuple[str, Decimal]:
    # Strictly greater keeps the first-seen department on ties.
    top_name, top_value = NO_DEPARTMENT, Decimal("0")
    for name, value in totals.items():
        if value > top_value:
            top_name, top_value = name, value
    return top_name, top_value


def empty_orders_overview() -> Dict[str, Any]:
    return {"totalOrders": 0, "openOrders": 0, "closedOrders": 0, "topSpendDept": NO_DEPARTMENT}


def compute_orders_overview(source: OrderSource) -> Dict[str, Any]:
    total_orders = source.count_orders(OrderFilter())
    open_orders = source.count_orders(OrderFilter(statuses=OPEN_STATUSES))
    closed_orders = source.count_orders(OrderFilter(statuses=COMPLETED_STATUSES))
    top_department, _ = _top_entry(_spend_by_department(source.query_orders(OrderFilter())))
    return {
        "totalOrders": total_orders,
        "openOrders": open_orders,
        "closedOrders": closed_orders,
        "topSpendDept": top_department,
    }


def _spend_label(currency: str) -> str:
    return f"Spend ({currency})"


def empty_monthly_trend(currency: str) -> Dict[str, Any]:
    payload = SeriesPayload(
        series=[{"name": "Orders", "data": []}, {"name": _spend_label(currency), "data": []}],
    ).to_dict()
    payload["currency"] = currency
    return payload


def compute_monthly_trend(
    source: OrderSource,
    *,
    now: datetime,
    months: int = 12,
    currency: str = "SAR",
) -> Dict[str, Any]:
    labels: List[str] = []
    orders_series: List[int] = []
    spend_series: List[float] = []

    for time_range in monthly_ranges(now, months):
        orders = source.query_orders(OrderFilter(created_from=time_range.start, created_to=time_range.end))
        labels.append(time_range.label)
        orders_series.append(len(orders))
        spend_series.append(float(sum((order.total for order in orders), Decimal("0"))))

    payload = SeriesPayload(
        labels=labels,
        series=[
            {"name": "Orders", "data": orders_series},
            {"name": _spend_label(currency), "data": spend_series},
        ],
    ).to_dict()
    payload["currency"] = currency
    return payload


def empty_monthly_cards(currency: str) -> Dict[str, Any]:
    return {"totalOrders": 0, "spendThisMonth": 0, "changePct": 0, "currency": currency}


def compute_monthly_cards(source: OrderSource, *, now: datetime, currency: str = "SAR") -> Dict[str, Any]:
    this_month = month_range(now, 0)
    last_month = month_range(now, 1)

    current_orders = source.query_orders(OrderFilter(created_from=this_month.start, created_to=this_month.end))
    previous_orders = source.query_orders(OrderFilter(created_from=last_month.start, created_to=last_month.end))

    spend_this_month = float(sum((order.total for order in current_orders), Decimal("0")))
    previous_spend = float(sum((order.total for order in previous_orders), Decimal("0")))
    if previous_spend == 0:
        change_pct = 100.0
    else:
        change_pct = (spend_this_month - previous_spend) / previous_spend * 100

    return {
        "totalOrders": len(current_orders),
        "spendThisMonth": spend_this_month,
        "changePct": change_pct,
        "currency": currency,
    }


def empty_spend_by_department(currency: str) -> Dict[str, Any]:
    return {
        "labels": [],
        "data": [],
        "topDepartment": NO_DEPARTMENT,
        "topDepartmentPct": 0,
        "currency": currency,
    }


def compute_spend_by_department(source: OrderSource, *, currency: str = "SAR") -> Dict[str, Any]:
    totals = _spend_by_department(source.query_orders(OrderFilter()))
    grand_total = sum(totals.values(), Decimal("0"))
    top_department, top_value = _top_entry(totals)
    top_pct = 0.0 if grand_total == 0 else float(top_value / grand_total * 100)

    return {
        "labels": list(totals),
        "data": [float(value) for value in totals.values()],
        "topDepartment": top_department,
        "topDepartmentPct": top_pct,
        "currency": currency,
    }


def empty_delivery_summary() -> Dict[str, Any]:
    return {"rows": []}


def compute_delivery_summary(source: OrderSource) -> Dict[str, Any]:
    summary: Dict[str, Dict[str, float]] = {}
    for order in source.query_orders(OrderFilter(statuses=COMPLETED_STATUSES)):
        entry = summary.setdefault(order.vendor_name, {"deliveries": 0, "on_time": 0, "delay_total": 0.0})
        entry["deliveries"] += 1
        if order.needed_by is None:
            continue
        if order.updated_at <= order.needed_by:
            entry["on_time"] += 1
        else:
            entry["delay_total"] += (order.updated_at - order.needed_by).total_seconds() / SECONDS_PER_DAY

    rows = []
    for vendor, entry in summary.items():
        deliveries = int(entry["deliveries"])
        on_time = int(entry["on_time"])
        # Undated deliveries count in the divisor.
        not_on_time = deliveries - on_time
        rows.append(
            {
                "vendor": vendor,
                "deliveries": deliveries,
                "onTimePct": 0 if deliveries == 0 else on_time / deliveries * 100,
                "avgDelayDays": 0 if not_on_time == 0 else entry["delay_total"] / not_on_time,
            }
        )
    return {"rows": rows}


DELIVERY_OUTCOME_LABELS = ("On-Time", "Delayed")
VENDOR_CHART_SIZE = 10
TOP_VENDORS_DEFAULT_LIMIT = 10
TOP_VENDORS_MAX_LIMIT = 50


def empty_delivery_outcomes() -> Dict[str, Any]:
    return {"labels": list(DELIVERY_OUTCOME_LABELS), "data": [0, 0]}


def compute_delivery_outcomes(source: OrderSource) -> Dict[str, Any]:
    """On-time versus delayed counts over completed orders that carry a due date."""
    on_time = delayed = 0
    for order in source.query_orders(OrderFilter(statuses=COMPLETED_STATUSES, needed_by_required=True)):
        if order.updated_at <= order.needed_by:
            on_time += 1
        else:
            delayed += 1
    return {"labels": list(DELIVERY_OUTCOME_LABELS), "data": [on_time, delayed]}


def empty_vendors_on_time() -> Dict[str, Any]:
    return {"labels": [], "data": []}


def compute_vendors_on_time(source: OrderSource, *, size: int = VENDOR_CHART_SIZE) -> Dict[str, Any]:
    stats: Dict[str, List[int]] = {}
    for order in source.query_orders(OrderFilter(statuses=COMPLETED_STATUSES)):
        entry = stats.setdefault(order.vendor_name, [0, 0])
        entry[0] += 1
        if order.needed_by is not None and order.updated_at <= order.needed_by:
            entry[1] += 1

    ranked = sorted(
        ((vendor, 0 if total == 0 else on_time / total * 100) for vendor, (total, on_time) in stats.items()),
        key=lambda item: item[1],
        reverse=True,
    )[:size]
    return {"labels": [vendor for vendor, _ in ranked], "data": [pct for _, pct in ranked]}


def _spend_by_vendor(orders) -> Dict[str, List[Any]]:
    totals: Dict[str, List[Any]] = {}
    for order in orders:
        entry = totals.setdefault(order.vendor_name, [0, Decimal("0")])
        entry[0] += 1
        entry[1] += order.total
    return totals


def _ranked_by_spend(source: OrderSource, limit: int) -> List[tuple]:
    totals = _spend_by_vendor(source.query_orders(OrderFilter()))
    # Equal spend keeps first-seen order.
    ranked = sorted(totals.items(), key=lambda item: item[1][1], reverse=True)
    return [(vendor, count, total) for vendor, (count, total) in ranked[:limit]]


def clamp_top_vendors_limit(raw: str | None) -> int:
    """``?limit=`` for the top vendors table: 1..50, default 10 when absent or not a number."""
    if raw is None or not str(raw).strip():
        return TOP_VENDORS_DEFAULT_LIMIT
    try:
        value = int(float(raw))
    except (OverflowError, TypeError, ValueError):
        return TOP_VENDORS_DEFAULT_LIMIT
    if value == 0:
        return TOP_VENDORS_DEFAULT_LIMIT
    return min(max(value, 1), TOP_VENDORS_MAX_LIMIT)


def empty_top_vendors(currency: str) -> Dict[str, Any]:
    return {"rows": [], "currency": currency}


def compute_top_vendors(
    source: OrderSource,
    *,
    limit: int = TOP_VENDORS_DEFAULT_LIMIT,
    currency: str = "SAR",
) -> Dict[str, Any]:
    rows = [
        {
            "vendor": vendor,
            "orders": count,
            "total": float(total),
            "avg": float(total / count) if count else 0.0,
        }
        for vendor, count, total in _ranked_by_spend(source, limit)
    ]
    return {"rows": rows, "currency": currency}


def empty_vendors_distribution(currency: str) -> Dict[str, Any]:
    return {"labels": [], "data": [], "currency": currency}


def compute_vendors_distribution(
    source: OrderSource,
    *,
    size: int = VENDOR_CHART_SIZE,
    currency: str = "SAR",
) -> Dict[str, Any]:
    ranked = _ranked_by_spend(source, size)
    return {
        "labels": [vendor for vendor, _, _ in ranked],
        "data": [float(total) for _, _, total in ranked],
        "currency": currency,
    }
