"""
Response envelope normalisation.

The backend is inconsistent about how it wraps results: some endpoints
answer ``{"success": true, "data": {"schemes": [...]}}``, others
``{"schemes": [...]}``, a few a bare list.  All of that shape-sniffing
lives here, one normaliser per resource, so the store only ever sees a
list of records or a single record.
"""

from __future__ import annotations

from typing import Any

from .api import ApiError

ID_FIELDS = ("id", "_id", "grievanceId")


def record_id(record: dict[str, Any] | None) -> Any:
    """Return the identifier of a backend record, whatever it is called."""
    if not isinstance(record, dict):
        return None
    for field in ID_FIELDS:
        if record.get(field) is not None:
            return record[field]
    return None


def ensure_success(body: Any) -> None:
    """Raise when a 2xx envelope explicitly reports ``success: false``."""
    if isinstance(body, dict) and body.get("success") is False:
        message = body.get("message") or body.get("error") or "Request was not successful"
        raise ApiError(str(message), payload=body)


def unwrap_collection(body: Any, key: str) -> list[dict[str, Any]]:
    """
    Pull a list of records out of any known envelope shape.

    Order of preference: ``body["data"][key]``, ``body[key]``, a bare
    ``body["data"]`` list, the body itself when it is a list.  Anything
    else yields an empty list.
    """
    ensure_success(body)
    if isinstance(body, list):
        return body
    if not isinstance(body, dict):
        return []
    data = body.get("data")
    if isinstance(data, dict) and isinstance(data.get(key), list):
        return data[key]
    if isinstance(body.get(key), list):
        return body[key]
    if isinstance(data, list):
        return data
    return []


def unwrap_item(body: Any, key: str) -> dict[str, Any] | None:
    """Pull a single record out of any known envelope shape."""
    ensure_success(body)
    if not isinstance(body, dict):
        return None
    data = body.get("data")
    if isinstance(data, dict):
        if isinstance(data.get(key), dict):
            return data[key]
    if isinstance(body.get(key), dict):
        return body[key]
    if isinstance(data, dict) and record_id(data) is not None:
        return data
    return None


def schemes(body: Any) -> list[dict[str, Any]]:
    return unwrap_collection(body, "schemes")


def scheme(body: Any) -> dict[str, Any] | None:
    return unwrap_item(body, "scheme")


def applications(body: Any) -> list[dict[str, Any]]:
    return unwrap_collection(body, "applications")


def application(body: Any) -> dict[str, Any] | None:
    return unwrap_item(body, "application")


def grievances(body: Any) -> list[dict[str, Any]]:
    return unwrap_collection(body, "grievances")


def grievance(body: Any) -> dict[str, Any] | None:
    return unwrap_item(body, "grievance")


def announcements(body: Any) -> list[dict[str, Any]]:
    return unwrap_collection(body, "announcements")


def announcement(body: Any) -> dict[str, Any] | None:
    return unwrap_item(body, "announcement")


def services(body: Any) -> list[dict[str, Any]]:
    return unwrap_collection(body, "services")


def service(body: Any) -> dict[str, Any] | None:
    return unwrap_item(body, "service")


def timeline(body: Any) -> list[dict[str, Any]]:
    return unwrap_collection(body, "timeline")


def activity(body: Any) -> list[dict[str, Any]]:
    return unwrap_collection(body, "activity")


def comment(body: Any) -> dict[str, Any] | None:
    return unwrap_item(body, "comment")


def stats(body: Any) -> dict[str, Any]:
    """Extract a statistics summary; an empty dict when none is present."""
    ensure_success(body)
    if not isinstance(body, dict):
        return {}
    data = body.get("data")
    if isinstance(data, dict):
        if isinstance(data.get("stats"), dict):
            return data["stats"]
    if isinstance(body.get("stats"), dict):
        return body["stats"]
    if isinstance(data, dict):
        return data
    return {}


def auth_session(body: Any) -> tuple[str, dict[str, Any]]:
    """
    Extract ``(token, user)`` from a login or registration response.

    Raises:
        ApiError: When neither ``{data: {token, user}}`` nor
            ``{token, user}`` is present.
    """
    ensure_success(body)
    source = body.get("data") if isinstance(body, dict) and isinstance(body.get("data"), dict) else body
    if isinstance(source, dict) and source.get("token") and isinstance(source.get("user"), dict):
        return source["token"], source["user"]
    raise ApiError("Invalid response format from server", payload=body)


def user(body: Any) -> dict[str, Any] | None:
    return unwrap_item(body, "user")
