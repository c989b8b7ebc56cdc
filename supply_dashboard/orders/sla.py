from __future__ import annotations

from datetime import datetime
from typing import Iterable

from supply_dashboard.domain.contracts import COMPLETED_STATUSES, OrderSnapshot


WITHIN_SLA = "within_sla"
OVER_SLA = "over_sla"
UNCLASSIFIED = "unclassified"


def is_completed(status: str | None) -> bool:
    return str(status or "").strip().upper() in COMPLETED_STATUSES


def classify_sla(
    needed_by: datetime | None,
    updated_at: datetime,
    status: str | None,
    now: datetime,
) -> str:
    """Place one order in within/over SLA, or unclassified without a due date.

    An order that is still open and not yet due counts as within SLA: it has
    not breached the deadline, even though it has not met it either.
    """
    if needed_by is None:
        return UNCLASSIFIED
    if is_completed(status) and updated_at <= needed_by:
        return WITHIN_SLA
    if needed_by < now:
        return OVER_SLA
    return WITHIN_SLA


def classify_order(order: OrderSnapshot, now: datetime) -> str:
    return classify_sla(order.needed_by, order.updated_at, order.status, now)


def is_on_time(order: OrderSnapshot) -> bool:
    if order.needed_by is None or not is_completed(order.status):
        return False
    return order.updated_at <= order.needed_by


def on_time_pct(orders: Iterable[OrderSnapshot]) -> float:
    """Share of completed orders with a due date that finished by it, 0-100."""
    eligible = [order for order in orders if order.needed_by is not None and is_completed(order.status)]
    if not eligible:
        return 0.0
    return sum(1 for order in eligible if is_on_time(order)) / len(eligible) * 100
