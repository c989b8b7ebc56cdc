from __future__ import annotations

from typing import Dict


MESSAGES: Dict[str, Dict[str, str]] = {
    "error": {
        "aggregate_unavailable": "Dashboard data is unavailable right now. Try again in a moment.",
        "data_source_unavailable": "The order store could not be reached.",
        "unexpected_error": "The operation could not be completed. Try again in a moment.",
    },
    "success": {
        "demo_seeded": "Demo data loaded.",
        "schema_ready": "Database initialized.",
    },
}


def get_message(category: str, key: str, default: str | None = None) -> str:
    message = MESSAGES.get(category, {}).get(key)
    if message:
        return message
    if default is not None:
        return default
    return key


def error_message(key: str, default: str | None = None) -> str:
    return get_message("error", key, default)


def success_message(key: str, default: str | None = None) -> str:
    return get_message("success", key, default)
