from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List

from supply_dashboard.errors import DataSourceError


class BaseRepository:
    def __init__(self, db) -> None:
        self.db = db

    def build_where(self, clauses: List[str]) -> str:
        if not clauses:
            return ""
        return "WHERE " + " AND ".join(clauses)

    @staticmethod
    def in_clause(column: str, values: Iterable[Any]) -> tuple[str, list]:
        items = sorted(values)
        placeholders = ", ".join("?" for _ in items)
        return f"{column} IN ({placeholders})", list(items)

    @staticmethod
    def to_db_timestamp(value: datetime) -> str:
        # Stored timestamps are naive UTC.
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value.isoformat(sep=" ")

    @staticmethod
    def parse_timestamp(value: Any) -> datetime | None:
        if value is None:
            return None
        if isinstance(value, datetime):
            parsed = value
        else:
            raw = str(value).strip()
            if not raw:
                return None
            normalized = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
            try:
                parsed = datetime.fromisoformat(normalized)
            except ValueError:
                return None
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)

    @classmethod
    def require_timestamp(cls, value: Any, column: str) -> datetime:
        parsed = cls.parse_timestamp(value)
        if parsed is None:
            raise DataSourceError(details=f"malformed {column}: {value!r}")
        return parsed

    @staticmethod
    def parse_money(value: Any) -> Decimal:
        if value is None:
            return Decimal("0")
        if isinstance(value, Decimal):
            return value
        try:
            return Decimal(str(value))
        except InvalidOperation:
            return Decimal("0")
