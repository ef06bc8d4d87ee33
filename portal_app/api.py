"""
Transport layer for the Panchayat REST backend.

``ApiService`` turns a logical backend operation ("get schemes", "create
grievance", "upload documents") into exactly one HTTP call and returns the
parsed JSON body.  Every failure is raised as :class:`ApiError`; failures
where no response reached the portal are raised as the
:class:`ConnectivityError` subclass so that callers can keep connectivity
noise out of user notifications.

The service is stateless apart from its configuration.  The bearer token
is read from durable storage on *every* request, never cached, so a login
or logout in the same page session is picked up immediately.

Each call is attempted once, with no retry, caching or request
de-duplication.

Key Concepts Demonstrated:
- One ``request`` choke point for headers, timeout and error mapping
- Thin, stateless per-endpoint wrappers with fixed path templates
- Classified failures (HTTP vs. connectivity)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import urlencode

import requests

from .storage import TOKEN_KEY, Storage

logger = logging.getLogger(__name__)

CONNECTION_ERROR_MESSAGE = "Unable to connect to server. Please check your internet connection."
CONNECTION_ERROR_MARKER = "Unable to connect to server"
DOCUMENTS_FIELD = "documents"


class ApiError(Exception):
    """
    Failure raised for any unsuccessful backend call.

    Attributes:
        message: Human-readable message, taken from the server when it
            supplied one.
        status_code: HTTP status of the failed response, or ``None`` when
            no response was received.
        payload: Decoded error body, if any.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


class ConnectivityError(ApiError):
    """Raised when the backend could not be reached at all."""

    def __init__(self, message: str = CONNECTION_ERROR_MESSAGE) -> None:
        super().__init__(message)


def is_connectivity_error(error: BaseException) -> bool:
    """Return True when *error* describes a connectivity failure."""
    if isinstance(error, ConnectivityError):
        return True
    return CONNECTION_ERROR_MARKER in str(error)


def build_query(params: Mapping[str, Any] | None) -> str:
    """
    URL-encode query parameters, omitting ``None`` and empty values.

    Returns:
        ``"?a=1&b=2"`` or an empty string when nothing is left.
    """
    if not params:
        return ""
    present = {key: value for key, value in params.items() if value is not None and value != ""}
    if not present:
        return ""
    return f"?{urlencode(present)}"


def _error_message(response: requests.Response, default: str) -> tuple[str, Any]:
    """
    Extract the server-supplied message from an error response.

    Falls back to *default* when the body is not JSON or carries no
    usable ``message``/``error`` field.
    """
    try:
        payload = response.json()
    except ValueError:
        return default, None
    if isinstance(payload, dict):
        for field in ("message", "error"):
            message = payload.get(field)
            if isinstance(message, str) and message.strip():
                return message, payload
    return default, payload


class ApiService:
    """
    Gateway to the Panchayat REST API.

    Args:
        base_url: API root, e.g. ``"http://localhost:5000/api"``.
        storage: Durable storage the bearer token is read from.
        timeout: Per-request timeout in seconds.
        on_unauthorized: Called (with no arguments) whenever the backend
            answers 401, before the error is raised.
    """

    def __init__(
        self,
        base_url: str,
        storage: Storage,
        timeout: float = 10,
        on_unauthorized: Callable[[], None] | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.storage = storage
        self.timeout = timeout
        self.on_unauthorized = on_unauthorized

    # -----------------------------------------------------------------
    # Core plumbing
    # -----------------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _auth_headers(self) -> dict[str, str]:
        token = self.storage.get(TOKEN_KEY)
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    def get_headers(self) -> dict[str, str]:
        """JSON request headers with auth attached when a token is stored."""
        return {"Content-Type": "application/json", **self._auth_headers()}

    def get_file_headers(self) -> dict[str, str]:
        """Upload/download headers: auth only, so the boundary is set for us."""
        return self._auth_headers()

    def _send(self, method: str, path: str, **kwargs) -> requests.Response:
        """Perform the HTTP call, mapping transport failures to ConnectivityError."""
        url = self._url(path)
        try:
            return requests.request(method=method, url=url, timeout=self.timeout, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as exc:
            logger.warning("Backend unreachable for %s %s: %s", method, url, exc)
            raise ConnectivityError() from exc
        except requests.RequestException as exc:
            logger.warning("Request failed for %s %s: %s", method, url, exc)
            raise ApiError(str(exc) or "Request failed") from exc

    def _parse(self, response: requests.Response, method: str, path: str) -> Any:
        """Return the JSON body of a 2xx response or raise ApiError."""
        status = response.status_code
        if not 200 <= status < 300:
            message, payload = _error_message(response, f"HTTP error! status: {status}")
            logger.warning("%s %s failed with %s: %s", method, path, status, message)
            if status == 401 and self.on_unauthorized is not None:
                self.on_unauthorized()
            raise ApiError(message, status_code=status, payload=payload)

        if status == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError("Invalid response from server", status_code=status) from exc

    def request(
        self,
        path: str,
        method: str = "GET",
        data: str | None = None,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        """
        Send one JSON request and return the parsed response body.

        Args:
            path: Path relative to the base URL (e.g. ``"/schemes/4"``).
            method: HTTP method.
            data: Request body, already serialised.
            headers: Overrides merged on top of the default headers.
            params: Query parameters; ``None`` values are omitted.

        Returns:
            The decoded JSON body (``{}`` for an empty success body).

        Raises:
            ConnectivityError: The backend could not be reached.
            ApiError: The backend answered with a non-2xx status.
        """
        full_path = f"{path}{build_query(params)}"
        merged = {**self.get_headers(), **(headers or {})}
        response = self._send(method, full_path, headers=merged, data=data)
        return self._parse(response, method, full_path)

    def upload_file(self, path: str, files: Any) -> Any:
        """
        POST a multipart payload as-is.

        No ``Content-Type`` header is set so ``requests`` can add the
        multipart boundary itself.  Error classification matches
        :meth:`request`.
        """
        response = self._send("POST", path, headers=self.get_file_headers(), files=files)
        return self._parse(response, "POST", path)

    def _json(self, path: str, method: str, body: Any) -> Any:
        return self.request(path, method=method, data=json.dumps(body))

    # -----------------------------------------------------------------
    # Authentication
    # -----------------------------------------------------------------

    def login(self, credentials: dict[str, Any]) -> Any:
        return self._json("/auth/login", "POST", credentials)

    def register(self, user_data: dict[str, Any]) -> Any:
        return self._json("/auth/register", "POST", user_data)

    def verify_otp(self, otp_data: dict[str, Any]) -> Any:
        return self._json("/auth/verify-otp", "POST", otp_data)

    def resend_otp(self, email: str) -> Any:
        return self._json("/auth/resend-otp", "POST", {"email": email})

    def logout(self) -> Any:
        return self.request("/auth/logout", method="POST")

    def get_me(self) -> Any:
        return self.request("/auth/me")

    def get_profile(self) -> Any:
        return self.request("/auth/profile")

    def update_profile(self, profile_data: dict[str, Any]) -> Any:
        return self._json("/auth/profile", "PUT", profile_data)

    def change_password(self, password_data: dict[str, Any]) -> Any:
        return self._json("/auth/change-password", "PUT", password_data)

    # -----------------------------------------------------------------
    # Schemes
    # -----------------------------------------------------------------

    def get_schemes(self, params: Mapping[str, Any] | None = None) -> Any:
        return self.request("/schemes", params=params)

    def get_scheme(self, scheme_id: str) -> Any:
        return self.request(f"/schemes/{scheme_id}")

    def apply_for_scheme(self, scheme_id: str, application_data: dict[str, Any]) -> Any:
        return self._json(f"/schemes/{scheme_id}/apply", "POST", application_data)

    # -----------------------------------------------------------------
    # Applications
    # -----------------------------------------------------------------

    def get_applications(self, params: Mapping[str, Any] | None = None) -> Any:
        return self.request("/applications", params=params)

    def get_application(self, application_id: str) -> Any:
        return self.request(f"/applications/{application_id}")

    def create_application(self, application_data: dict[str, Any]) -> Any:
        return self._json("/applications", "POST", application_data)

    def update_application(self, application_id: str, application_data: dict[str, Any]) -> Any:
        return self._json(f"/applications/{application_id}", "PUT", application_data)

    def delete_application(self, application_id: str) -> Any:
        return self.request(f"/applications/{application_id}", method="DELETE")

    def upload_application_documents(self, application_id: str, files: Any) -> Any:
        return self.upload_file(f"/applications/{application_id}/documents", files)

    def add_application_comment(self, application_id: str, comment: str) -> Any:
        return self._json(f"/applications/{application_id}/comments", "POST", {"comment": comment})

    # -----------------------------------------------------------------
    # Grievances
    # -----------------------------------------------------------------

    def get_grievances(self, params: Mapping[str, Any] | None = None) -> Any:
        return self.request("/grievances", params=params)

    def get_grievance(self, grievance_id: str) -> Any:
        return self.request(f"/grievances/{grievance_id}")

    def create_grievance(self, grievance_data: dict[str, Any]) -> Any:
        return self._json("/grievances", "POST", grievance_data)

    def update_grievance(self, grievance_id: str, grievance_data: dict[str, Any]) -> Any:
        return self._json(f"/grievances/{grievance_id}", "PUT", grievance_data)

    def delete_grievance(self, grievance_id: str) -> Any:
        return self.request(f"/grievances/{grievance_id}", method="DELETE")

    def upload_grievance_documents(self, grievance_id: str, files: Any) -> Any:
        return self.upload_file(f"/grievances/{grievance_id}/documents", files)

    def add_grievance_comment(self, grievance_id: str, comment: str) -> Any:
        return self._json(f"/grievances/{grievance_id}/comments", "POST", {"comment": comment})

    def get_grievance_timeline(self, grievance_id: str) -> Any:
        return self.request(f"/grievances/{grievance_id}/timeline")

    def get_grievance_stats(self) -> Any:
        return self.request("/grievances/stats/overview")

    # -----------------------------------------------------------------
    # Announcements and services
    # -----------------------------------------------------------------

    def get_announcements(self, params: Mapping[str, Any] | None = None) -> Any:
        return self.request("/announcements", params=params)

    def get_announcement(self, announcement_id: str) -> Any:
        return self.request(f"/announcements/{announcement_id}")

    def get_services(self, params: Mapping[str, Any] | None = None) -> Any:
        return self.request("/services", params=params)

    def get_service(self, service_id: str) -> Any:
        return self.request(f"/services/{service_id}")

    # -----------------------------------------------------------------
    # Dashboard and admin
    # -----------------------------------------------------------------

    def get_dashboard_stats(self) -> Any:
        return self.request("/dashboard/stats")

    def get_recent_activity(self) -> Any:
        return self.request("/dashboard/activity")

    def get_admin_stats(self) -> Any:
        return self.request("/admin/stats")

    def get_admin_applications(self, params: Mapping[str, Any] | None = None) -> Any:
        return self.request("/admin/applications", params=params)

    def get_admin_grievances(self, params: Mapping[str, Any] | None = None) -> Any:
        return self.request("/admin/grievances", params=params)

    def update_application_status(self, application_id: str, status: str, comment: str | None = None) -> Any:
        return self._json(
            f"/admin/applications/{application_id}/status",
            "PUT",
            {"status": status, "comment": comment},
        )

    def update_grievance_status(self, grievance_id: str, status: str, comment: str | None = None) -> Any:
        return self._json(
            f"/admin/grievances/{grievance_id}/status",
            "PUT",
            {"status": status, "comment": comment},
        )

    # -----------------------------------------------------------------
    # Admin catalog management
    # -----------------------------------------------------------------

    def get_admin_schemes(self, params: Mapping[str, Any] | None = None) -> Any:
        return self.request("/admin/schemes", params=params)

    def create_scheme(self, scheme_data: dict[str, Any]) -> Any:
        return self._json("/admin/schemes", "POST", scheme_data)

    def update_scheme(self, scheme_id: str, scheme_data: dict[str, Any]) -> Any:
        return self._json(f"/admin/schemes/{scheme_id}", "PUT", scheme_data)

    def delete_scheme(self, scheme_id: str) -> Any:
        return self.request(f"/admin/schemes/{scheme_id}", method="DELETE")

    def get_admin_announcements(self, params: Mapping[str, Any] | None = None) -> Any:
        return self.request("/admin/announcements", params=params)

    def create_announcement(self, announcement_data: dict[str, Any]) -> Any:
        return self._json("/admin/announcements", "POST", announcement_data)

    def update_announcement(self, announcement_id: str, announcement_data: dict[str, Any]) -> Any:
        return self._json(f"/admin/announcements/{announcement_id}", "PUT", announcement_data)

    def delete_announcement(self, announcement_id: str) -> Any:
        return self.request(f"/admin/announcements/{announcement_id}", method="DELETE")

    def get_admin_services(self, params: Mapping[str, Any] | None = None) -> Any:
        return self.request("/admin/services", params=params)

    def create_service(self, service_data: dict[str, Any]) -> Any:
        return self._json("/admin/services", "POST", service_data)

    def update_service(self, service_id: str, service_data: dict[str, Any]) -> Any:
        return self._json(f"/admin/services/{service_id}", "PUT", service_data)

    def delete_service(self, service_id: str) -> Any:
        return self.request(f"/admin/services/{service_id}", method="DELETE")

    # -----------------------------------------------------------------
    # Files
    # -----------------------------------------------------------------

    def download_file(self, file_id: str) -> tuple[bytes, str]:
        """
        Fetch a stored attachment as raw bytes.

        Returns:
            ``(content, content_type)`` of the downloaded file.

        Raises:
            ConnectivityError: The backend could not be reached.
            ApiError: ``"File download failed"`` for any non-2xx status.
        """
        response = self._send("GET", f"/files/{file_id}", headers=self.get_file_headers())
        if not 200 <= response.status_code < 300:
            raise ApiError("File download failed", status_code=response.status_code)
        content_type = response.headers.get("Content-Type", "application/octet-stream")
        return response.content, content_type
