from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, FrozenSet, List, Protocol


URGENT_PRIORITY = "Urgent"
OPEN_STATUSES: FrozenSet[str] = frozenset({"OPEN", "PARTIAL"})
COMPLETED_STATUSES: FrozenSet[str] = frozenset({"RECEIVED", "CLOSED"})
UNASSIGNED = "Unassigned"


@dataclass(frozen=True)
class ServiceOutput:
    payload: Dict[str, Any]
    status_code: int = 200


@dataclass(frozen=True)
class OrderFilter:
    """Read filter understood by every order source.

    ``created_from``/``created_to`` are both inclusive.
    """

    priority: str | None = None
    statuses: FrozenSet[str] = frozenset()
    created_from: datetime | None = None
    created_to: datetime | None = None
    needed_by_required: bool = False


@dataclass(frozen=True)
class OrderSnapshot:
    id: int
    priority: str
    status: str
    created_at: datetime
    updated_at: datetime
    total: Decimal = Decimal("0")
    department_id: int | None = None
    department_name: str = UNASSIGNED
    vendor_name: str = UNASSIGNED
    needed_by: datetime | None = None


@dataclass(frozen=True)
class TimeRange:
    label: str
    start: datetime
    end: datetime


@dataclass
class SeriesPayload:
    labels: List[str] = field(default_factory=list)
    series: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"labels": list(self.labels), "series": [dict(item) for item in self.series]}


class OrderSource(Protocol):
    def query_orders(self, order_filter: OrderFilter) -> List[OrderSnapshot]:
        ...

    def count_orders(self, order_filter: OrderFilter) -> int:
        ...

    def count_departments(self) -> int:
        ...
