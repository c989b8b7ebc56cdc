from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict
from zoneinfo import ZoneInfo

from supply_dashboard.domain.contracts import OrderSource, ServiceOutput
from supply_dashboard.errors import DataSourceError
from supply_dashboard.infrastructure.repositories import PurchaseOrderRepository
from supply_dashboard.observability import observe_aggregate
from supply_dashboard.orders import overview, urgent
from supply_dashboard.orders.time_buckets import normalize_period


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OrdersAggregateService:
    """Builds dashboard payloads for the orders aggregate routes.

    Each call builds a fresh order source from ``db`` and recomputes the
    payload. A data source failure is re-raised carrying the empty payload
    of the requested shape so the HTTP layer can answer with it.
    """

    def __init__(
        self,
        source_factory: Callable[[Any], OrderSource] = PurchaseOrderRepository,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.source_factory = source_factory
        self.clock = clock

    def now(self, timezone_name: str | None = None) -> datetime:
        current = self.clock()
        if timezone_name:
            return current.astimezone(ZoneInfo(timezone_name))
        return current

    def _run(
        self,
        aggregate: str,
        fallback: Dict[str, Any],
        compute_fn: Callable[[], Dict[str, Any]],
    ) -> ServiceOutput:
        started = time.perf_counter()
        try:
            payload = compute_fn()
        except DataSourceError as exc:
            observe_aggregate(aggregate, "failed", (time.perf_counter() - started) * 1000.0)
            raise exc.with_fallback(fallback) from exc
        observe_aggregate(aggregate, "ok", (time.perf_counter() - started) * 1000.0)
        return ServiceOutput(payload=payload)

    def urgent_status(self, db, *, period: str | None, timezone_name: str | None = None) -> ServiceOutput:
        source = self.source_factory(db)
        now = self.now(timezone_name)
        return self._run(
            "urgent_status",
            urgent.empty_status_series(),
            lambda: urgent.compute_urgent_status_series(source, normalize_period(period), now=now),
        )

    def urgent_by_department(self, db) -> ServiceOutput:
        source = self.source_factory(db)
        return self._run(
            "urgent_by_department",
            {"labels": [], "data": []},
            lambda: urgent.aggregate_urgent_by_department(source),
        )

    def urgent_kpis(self, db) -> ServiceOutput:
        source = self.source_factory(db)
        return self._run(
            "urgent_kpis",
            {
                "openUrgent": 0,
                "closedUrgent": 0,
                "onTimePct": 0,
                "urgentPerDept": {"current": 0, "totalDepts": 0},
            },
            lambda: urgent.compute_urgent_kpis(source),
        )

    def orders_overview(self, db) -> ServiceOutput:
        source = self.source_factory(db)
        return self._run(
            "orders_overview",
            overview.empty_orders_overview(),
            lambda: overview.compute_orders_overview(source),
        )

    def monthly_trend(
        self,
        db,
        *,
        months: int,
        currency: str,
        timezone_name: str | None = None,
    ) -> ServiceOutput:
        source = self.source_factory(db)
        now = self.now(timezone_name)
        return self._run(
            "monthly_trend",
            overview.empty_monthly_trend(currency),
            lambda: overview.compute_monthly_trend(source, now=now, months=months, currency=currency),
        )

    def monthly_cards(self, db, *, currency: str, timezone_name: str | None = None) -> ServiceOutput:
        source = self.source_factory(db)
        now = self.now(timezone_name)
        return self._run(
            "monthly_cards",
            overview.empty_monthly_cards(currency),
            lambda: overview.compute_monthly_cards(source, now=now, currency=currency),
        )

    def spend_by_department(self, db, *, currency: str) -> ServiceOutput:
        source = self.source_factory(db)
        return self._run(
            "spend_by_department",
            overview.empty_spend_by_department(currency),
            lambda: overview.compute_spend_by_department(source, currency=currency),
        )

    def delivery_summary(self, db) -> ServiceOutput:
        source = self.source_factory(db)
        return self._run(
            "delivery_summary",
            overview.empty_delivery_summary(),
            lambda: overview.compute_delivery_summary(source),
        )

    def delivery_outcomes(self, db) -> ServiceOutput:
        source = self.source_factory(db)
        return self._run(
            "delivery_outcomes",
            overview.empty_delivery_outcomes(),
            lambda: overview.compute_delivery_outcomes(source),
        )

    def vendors_on_time(self, db) -> ServiceOutput:
        source = self.source_factory(db)
        return self._run(
            "vendors_on_time",
            overview.empty_vendors_on_time(),
            lambda: overview.compute_vendors_on_time(source),
        )

    def top_vendors(self, db, *, limit: str | None, currency: str) -> ServiceOutput:
        source = self.source_factory(db)
        return self._run(
            "top_vendors",
            overview.empty_top_vendors(currency),
            lambda: overview.compute_top_vendors(
                source,
                limit=overview.clamp_top_vendors_limit(limit),
                currency=currency,
            ),
        )

    def vendors_distribution(self, db, *, currency: str) -> ServiceOutput:
        source = self.source_factory(db)
        return self._run(
            "vendors_distribution",
            overview.empty_vendors_distribution(currency),
            lambda: overview.compute_vendors_distribution(source, currency=currency),
        )
