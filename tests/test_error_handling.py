import unittest
from unittest.mock import patch

from supply_dashboard import create_app
from supply_dashboard.config import Config
from supply_dashboard.db import close_db
from supply_dashboard.errors import AppError, DataSourceError, SystemError
from supply_dashboard.routes import aggregate_routes
from supply_dashboard.ui_strings import error_message
from tests.helpers.fake_orders import InMemoryOrderSource
from tests.helpers.temp_db import TempDbSandbox


class AppErrorPayloadTest(unittest.TestCase):
    def test_defaults_come_from_class(self) -> None:
        error = DataSourceError()

        self.assertEqual(error.code, "data_source_unavailable")
        self.assertEqual(error.http_status, 502)
        self.assertFalse(error.critical)
        self.assertEqual(error.user_message(), error_message("data_source_unavailable"))
        self.assertTrue(SystemError().critical)

    def test_unknown_message_key_falls_back_to_generic_message(self) -> None:
        error = AppError(message_key="not_a_key")

        self.assertEqual(error.user_message(), error_message("unexpected_error"))

    def test_payload_keys_are_merged_with_error_fields(self) -> None:
        error = AppError(code="boom", payload={"labels": [], "error": "overridden"})

        payload = error.to_response_payload("req-1")

        self.assertEqual(payload["labels"], [])
        self.assertEqual(payload["error"], "boom")
        self.assertEqual(payload["request_id"], "req-1")

    def test_data_source_error_with_fallback(self) -> None:
        source_error = DataSourceError(details="query_orders: no such table")

        mapped = source_error.with_fallback({"labels": [], "data": []})

        self.assertEqual(source_error.http_status, 502)
        self.assertEqual(mapped.code, "aggregate_unavailable")
        self.assertEqual(mapped.http_status, 500)
        self.assertEqual(mapped.details, "query_orders: no such table")
        self.assertEqual(mapped.payload, {"labels": [], "data": []})


class ErrorHandlingApiTest(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_db = TempDbSandbox(prefix="error_api")
        self.app = create_app(self._temp_db.make_config(Config, TESTING=False, PROPAGATE_EXCEPTIONS=False))
        self.client = self.app.test_client()

    def tearDown(self) -> None:
        with self.app.app_context():
            close_db()
        self._temp_db.cleanup()

    def test_unknown_route_keeps_http_status(self) -> None:
        response = self.client.get("/api/aggregates/orders/unknown")

        self.assertEqual(response.status_code, 404)

    def test_stack_trace_not_exposed_for_unhandled_error(self) -> None:
        with patch.object(
            aggregate_routes._AGGREGATES_SERVICE,
            "urgent_kpis",
            side_effect=RuntimeError("stack_secret_token"),
        ):
            response = self.client.get("/api/aggregates/orders/urgent-kpis")

        self.assertEqual(response.status_code, 500)
        payload = response.get_json()
        self.assertEqual(payload.get("error"), "unexpected_error")
        self.assertEqual(payload.get("message"), error_message("unexpected_error"))
        self.assertTrue((payload.get("request_id") or "").strip())
        body = response.get_data(as_text=True)
        self.assertNotIn("Traceback", body)
        self.assertNotIn("stack_secret_token", body)

    def test_incoming_request_id_is_echoed(self) -> None:
        with patch.object(
            aggregate_routes._AGGREGATES_SERVICE,
            "source_factory",
            lambda _db: InMemoryOrderSource(fail=True),
        ):
            response = self.client.get(
                "/api/aggregates/orders/delivery/summary",
                headers={"X-Request-Id": "dash-req-42"},
            )

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.headers.get("X-Request-Id"), "dash-req-42")
        payload = response.get_json()
        self.assertEqual(payload["rows"], [])
        self.assertEqual(payload["request_id"], "dash-req-42")

    def test_aggregate_failure_is_logged_as_error(self) -> None:
        with patch.object(
            aggregate_routes._AGGREGATES_SERVICE,
            "source_factory",
            lambda _db: InMemoryOrderSource(fail=True),
        ):
            with self.assertLogs(self.app.logger.name, level="ERROR") as captured:
                self.client.get("/api/aggregates/orders/urgent-by-dept")

        self.assertTrue(any(record.getMessage() == "application_error" for record in captured.records))
        record = captured.records[0]
        self.assertEqual(record.error_code, "aggregate_unavailable")
        self.assertEqual(record.http_status, 500)


if __name__ == "__main__":
    unittest.main()
