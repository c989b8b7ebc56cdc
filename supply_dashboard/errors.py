from __future__ import annotations

from typing import Any, Dict

from supply_dashboard.ui_strings import error_message


class AppError(Exception):
    """Base error rendered as JSON by the app-level error handler.

    ``payload`` carries response fields for the caller (e.g. an empty chart
    shape); ``error``, ``message`` and ``request_id`` are added on top.
    """

    default_code = "system_error"
    default_message_key = "unexpected_error"
    default_http_status = 500
    default_critical = True

    def __init__(
        self,
        code: str | None = None,
        message_key: str | None = None,
        http_status: int | None = None,
        critical: bool | None = None,
        details: str | None = None,
        payload: Dict[str, Any] | None = None,
    ) -> None:
        self.code = str(code or self.default_code).strip()
        self.message_key = str(message_key or self.default_message_key).strip()
        self.http_status = int(http_status or self.default_http_status)
        self.critical = self.default_critical if critical is None else bool(critical)
        self.details = str(details or "").strip() or None
        self.payload: Dict[str, Any] = dict(payload or {})
        super().__init__(self.details or self.code)

    def user_message(self) -> str:
        return error_message(self.message_key, error_message("unexpected_error"))

    def to_response_payload(self, request_id: str) -> Dict[str, Any]:
        return {
            **self.payload,
            "error": self.code,
            "message": self.user_message(),
            "request_id": request_id,
        }


class DataSourceError(AppError):
    """The order store failed to answer a read."""

    default_code = "data_source_unavailable"
    default_message_key = "data_source_unavailable"
    default_http_status = 502
    default_critical = False

    def with_fallback(self, payload: Dict[str, Any], *, http_status: int = 500) -> "DataSourceError":
        """Same failure, answered with ``payload`` so dashboards can still render."""
        return DataSourceError(
            code="aggregate_unavailable",
            message_key="aggregate_unavailable",
            http_status=http_status,
            critical=self.critical,
            details=self.details,
            payload=payload,
        )


class SystemError(AppError):
    default_code = "system_error"
    default_message_key = "unexpected_error"
    default_http_status = 500
    default_critical = True
