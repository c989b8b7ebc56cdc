from __future__ import annotations

import logging
from typing import Any, List

from supply_dashboard.db import driver_errors
from supply_dashboard.domain.contracts import UNASSIGNED, OrderFilter, OrderSnapshot
from supply_dashboard.errors import DataSourceError
from supply_dashboard.infrastructure.repositories.base import BaseRepository


logger = logging.getLogger(__name__)


_ORDER_JOINS = """
    FROM purchase_orders po
    LEFT JOIN rfqs q ON q.id = po.rfq_id
    LEFT JOIN requests r ON r.id = q.request_id
    LEFT JOIN departments d ON d.id = r.department_id
    LEFT JOIN vendors v ON v.id = po.vendor_id
"""


class PurchaseOrderRepository(BaseRepository):
    """Order source backed by the relational store.

    The order -> rfq -> request -> department chain is resolved here, once,
    into flat snapshots.
    """

    def _filter_sql(self, order_filter: OrderFilter) -> tuple[str, list]:
        clauses: List[str] = []
        params: list = []
        if order_filter.priority:
            clauses.append("po.priority = ?")
            params.append(order_filter.priority)
        if order_filter.statuses:
            clause, values = self.in_clause("po.status", order_filter.statuses)
            clauses.append(clause)
            params.extend(values)
        if order_filter.created_from is not None:
            clauses.append("po.created_at >= ?")
            params.append(self.to_db_timestamp(order_filter.created_from))
        if order_filter.created_to is not None:
            clauses.append("po.created_at <= ?")
            params.append(self.to_db_timestamp(order_filter.created_to))
        if order_filter.needed_by_required:
            clauses.append("r.needed_by IS NOT NULL")
        return self.build_where(clauses), params

    def _fetch(self, sql: str, params: list, *, operation: str):
        try:
            return self.db.execute(sql, params).fetchall()
        except driver_errors() as exc:
            logger.error(
                "order_source_query_failed",
                extra={"operation": operation, "error_type": type(exc).__name__},
            )
            raise DataSourceError(details=f"{operation}: {exc}") from exc

    def query_orders(self, order_filter: OrderFilter) -> List[OrderSnapshot]:
        where_sql, params = self._filter_sql(order_filter)
        rows = self._fetch(
            f"""
            SELECT
                po.id,
                po.priority,
                po.status,
                po.total,
                po.created_at,
                po.updated_at,
                r.department_id,
                r.needed_by,
                d.name AS department_name,
                v.name_en AS vendor_name
            {_ORDER_JOINS}
            {where_sql}
            ORDER BY po.id
            """,
            params,
            operation="query_orders",
        )
        return [self._to_snapshot(row) for row in rows]

    def count_orders(self, order_filter: OrderFilter) -> int:
        where_sql, params = self._filter_sql(order_filter)
        rows = self._fetch(
            f"SELECT COUNT(*) AS total {_ORDER_JOINS} {where_sql}",
            params,
            operation="count_orders",
        )
        return int(rows[0]["total"] or 0) if rows else 0

    def count_departments(self) -> int:
        rows = self._fetch("SELECT COUNT(*) AS total FROM departments", [], operation="count_departments")
        return int(rows[0]["total"] or 0) if rows else 0

    def _to_snapshot(self, row: Any) -> OrderSnapshot:
        department_id = row["department_id"]
        return OrderSnapshot(
            id=int(row["id"]),
            priority=str(row["priority"] or ""),
            status=str(row["status"] or "").upper(),
            created_at=self.require_timestamp(row["created_at"], "created_at"),
            updated_at=self.require_timestamp(row["updated_at"], "updated_at"),
            total=self.parse_money(row["total"]),
            department_id=int(department_id) if department_id is not None else None,
            department_name=row["department_name"] or UNASSIGNED,
            vendor_name=row["vendor_name"] or UNASSIGNED,
            needed_by=self.parse_timestamp(row["needed_by"]),
        )
