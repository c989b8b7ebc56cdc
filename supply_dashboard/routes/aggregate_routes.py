from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from supply_dashboard.application.aggregates_service import OrdersAggregateService
from supply_dashboard.db import get_read_db


aggregates_bp = Blueprint("aggregates", __name__, url_prefix="/api/aggregates/orders")

_AGGREGATES_SERVICE = OrdersAggregateService()


def _timezone_name() -> str:
    return str(current_app.config.get("DASHBOARD_TIMEZONE") or "UTC")


def _currency() -> str:
    return str(current_app.config.get("DASHBOARD_CURRENCY") or "SAR")


def _respond(output):
    return jsonify(output.payload), output.status_code


@aggregates_bp.after_request
def _disable_caching(response):
    response.headers["Cache-Control"] = "no-store"
    return response


@aggregates_bp.route("/urgent-status", methods=["GET"])
def urgent_status_api():
    output = _AGGREGATES_SERVICE.urgent_status(
        get_read_db(),
        period=request.args.get("period"),
        timezone_name=_timezone_name(),
    )
    return _respond(output)


@aggregates_bp.route("/urgent-by-dept", methods=["GET"])
@aggregates_bp.route("/by-dept-urgent", methods=["GET"])
def urgent_by_department_api():
    return _respond(_AGGREGATES_SERVICE.urgent_by_department(get_read_db()))


@aggregates_bp.route("/urgent-kpis", methods=["GET"])
def urgent_kpis_api():
    return _respond(_AGGREGATES_SERVICE.urgent_kpis(get_read_db()))


@aggregates_bp.route("/overview-kpis", methods=["GET"])
def orders_overview_api():
    return _respond(_AGGREGATES_SERVICE.orders_overview(get_read_db()))


@aggregates_bp.route("/monthly-trend", methods=["GET"])
def monthly_trend_api():
    output = _AGGREGATES_SERVICE.monthly_trend(
        get_read_db(),
        months=int(current_app.config.get("MONTHLY_TREND_MONTHS") or 12),
        currency=_currency(),
        timezone_name=_timezone_name(),
    )
    return _respond(output)


@aggregates_bp.route("/monthly-cards", methods=["GET"])
def monthly_cards_api():
    output = _AGGREGATES_SERVICE.monthly_cards(
        get_read_db(),
        currency=_currency(),
        timezone_name=_timezone_name(),
    )
    return _respond(output)


@aggregates_bp.route("/spend/by-department", methods=["GET"])
def spend_by_department_api():
    return _respond(_AGGREGATES_SERVICE.spend_by_department(get_read_db(), currency=_currency()))


@aggregates_bp.route("/spend/top-vendors", methods=["GET"])
def top_vendors_api():
    output = _AGGREGATES_SERVICE.top_vendors(
        get_read_db(),
        limit=request.args.get("limit"),
        currency=_currency(),
    )
    return _respond(output)


@aggregates_bp.route("/spend/vendors-distribution", methods=["GET"])
def vendors_distribution_api():
    return _respond(_AGGREGATES_SERVICE.vendors_distribution(get_read_db(), currency=_currency()))


@aggregates_bp.route("/delivery/summary", methods=["GET"])
def delivery_summary_api():
    return _respond(_AGGREGATES_SERVICE.delivery_summary(get_read_db()))


@aggregates_bp.route("/delivery/outcomes", methods=["GET"])
def delivery_outcomes_api():
    return _respond(_AGGREGATES_SERVICE.delivery_outcomes(get_read_db()))


@aggregates_bp.route("/delivery/vendors-on-time", methods=["GET"])
def vendors_on_time_api():
    return _respond(_AGGREGATES_SERVICE.vendors_on_time(get_read_db()))
