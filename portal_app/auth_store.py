"""
Authentication state.

The signed-in user and bearer token live in durable storage under the
``user`` and ``token`` keys.  The transport layer reads ``token`` on every
request, so writing it here is all it takes for subsequent calls to be
authenticated.

Key Concepts Demonstrated:
- Persisted session state behind a small storage protocol
- Role checks for the admin surface
- Unverified JWT inspection for client-side expiry checks
"""

from __future__ import annotations

import logging
import time
from typing import Any

import jwt

from . import envelopes
from .api import ApiError, ApiService
from .storage import TOKEN_KEY, USER_KEY, Storage

logger = logging.getLogger(__name__)

STAFF_ROLES = ("admin", "staff")
ADMIN_DENIED_MESSAGE = "Access denied. Admin privileges required."


class AuthError(ApiError):
    """Raised when a request is refused by the portal itself."""


def token_expired(token: str | None, leeway: int = 0) -> bool:
    """
    Check a bearer token's ``exp`` claim without verifying its signature.

    The portal cannot verify tokens (it does not hold the backend's key);
    this only spares a round trip for a token that is certainly stale.
    Tokens that are not JWTs, or carry no ``exp``, count as not expired.

    Args:
        token: The stored bearer token.
        leeway: Seconds of clock skew to tolerate.

    Returns:
        True when the token is missing or its ``exp`` is in the past.
    """
    if not token:
        return True
    try:
        claims = jwt.decode(token, options={"verify_signature": False, "verify_exp": False})
    except jwt.InvalidTokenError:
        return False
    exp = claims.get("exp")
    if exp is None:
        return False
    try:
        return float(exp) + leeway < time.time()
    except (TypeError, ValueError):
        return False


class AuthStore:
    """
    Login, registration and profile state for one page session.

    Args:
        api: Transport layer.
        storage: Durable storage shared with ``api``.
    """

    def __init__(self, api: ApiService, storage: Storage) -> None:
        self.api = api
        self.storage = storage

    # -----------------------------------------------------------------
    # State accessors
    # -----------------------------------------------------------------

    @property
    def token(self) -> str | None:
        return self.storage.get(TOKEN_KEY)

    @property
    def user(self) -> dict[str, Any] | None:
        return self.storage.get(USER_KEY)

    def _persist(self, token: str | None, user: dict[str, Any] | None) -> None:
        if token is not None:
            self.storage.set(TOKEN_KEY, token)
        if user is not None:
            self.storage.set(USER_KEY, user)

    def clear(self) -> None:
        """Forget the token and user."""
        self.storage.remove(TOKEN_KEY)
        self.storage.remove(USER_KEY)

    def is_authenticated(self) -> bool:
        return bool(self.token) and self.user is not None

    def is_admin(self) -> bool:
        return (self.user or {}).get("role") == "admin"

    def is_staff(self) -> bool:
        return (self.user or {}).get("role") in STAFF_ROLES

    def is_verified(self) -> bool:
        return bool((self.user or {}).get("isVerified"))

    def token_expired(self) -> bool:
        return token_expired(self.token)

    # -----------------------------------------------------------------
    # Session lifecycle
    # -----------------------------------------------------------------

    def login(self, credentials: dict[str, Any], is_admin: bool = False) -> dict[str, Any]:
        """
        Authenticate and persist the session.

        Args:
            credentials: ``{"email": ..., "password": ...}``.
            is_admin: Require a staff or admin role.

        Returns:
            The signed-in user.

        Raises:
            AuthError: An admin login was attempted by a non-staff user;
                nothing is persisted.
            ApiError: The backend rejected the credentials or was
                unreachable.
        """
        token, user = envelopes.auth_session(self.api.login(credentials))
        if is_admin and user.get("role") not in STAFF_ROLES:
            logger.info("Admin login refused for role %r", user.get("role"))
            raise AuthError(ADMIN_DENIED_MESSAGE, status_code=403)
        self._persist(token, user)
        logger.info("User %s logged in", user.get("email") or user.get("id"))
        return user

    def register(self, user_data: dict[str, Any]) -> dict[str, Any]:
        """Create an account and sign it in straight away."""
        token, user = envelopes.auth_session(self.api.register(user_data))
        self._persist(token, user)
        return user

    def verify_otp(self, email: str, otp: str) -> dict[str, Any] | None:
        """
        Confirm the one-time code sent after registration.

        When the backend answers with a fresh session it replaces the
        stored one; otherwise the stored user is marked verified.  An
        envelope reporting ``success: false`` is a rejected code and
        raises without touching the stored user.
        """
        body = self.api.verify_otp({"email": email, "otp": otp})
        envelopes.ensure_success(body)
        try:
            token, user = envelopes.auth_session(body)
        except ApiError:
            user = self.user
            if user is not None:
                user = {**user, "isVerified": True}
                self._persist(None, user)
            return user
        self._persist(token, user)
        return user

    def resend_otp(self, email: str) -> Any:
        return self.api.resend_otp(email)

    def logout(self, skip_api: bool = False) -> None:
        """
        End the session.

        Local state is always cleared, even when the backend call fails.
        """
        try:
            if not skip_api and self.token:
                self.api.logout()
        except ApiError as error:
            logger.warning("Logout call failed: %s", error.message)
        finally:
            self.clear()

    def update_profile(self, profile_data: dict[str, Any]) -> dict[str, Any] | None:
        user = envelopes.user(self.api.update_profile(profile_data))
        if user is not None:
            self._persist(None, user)
        return user

    def change_password(self, current_password: str, new_password: str) -> Any:
        return self.api.change_password(
            {"currentPassword": current_password, "newPassword": new_password}
        )

    def check_auth(self) -> bool:
        """
        Confirm the stored session with the backend.

        A 401 clears the session.  Any other failure (including the
        backend being unreachable) keeps the user signed in locally.

        Returns:
            Whether the user is still considered signed in.
        """
        if not self.is_authenticated():
            self.clear()
            return False
        try:
            user = envelopes.user(self.api.get_me())
        except ApiError as error:
            if error.status_code == 401:
                self.clear()
                return False
            logger.info("Auth check inconclusive, keeping session: %s", error.message)
            return True
        if user is not None:
            self._persist(None, user)
        return True

    def refresh_user(self) -> dict[str, Any] | None:
        user = envelopes.user(self.api.get_me())
        if user is not None:
            self._persist(None, user)
        return user
