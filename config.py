"""
Configuration classes for the e-Gram Panchayat portal.

The portal is a stateless BFF (backend-for-frontend). It serves
server-rendered HTML and delegates every read and write to the Panchayat
REST backend over HTTP. Configuration values are loaded from environment
variables with sensible defaults.
"""

from __future__ import annotations

import os
from pathlib import Path

# Base directory of the project
BASE_DIR = Path(__file__).resolve().parent

TEN_MEGABYTES = 10 * 1024 * 1024


class Config:
    """Base configuration for all portal environments."""

    SECRET_KEY: str = os.environ.get("SECRET_KEY", "portal-dev-secret-change-in-production")

    API_BASE_URL: str = os.environ.get("API_BASE_URL", "http://localhost:5000/api")
    API_TIMEOUT: int = int(os.environ.get("API_TIMEOUT", "10"))

    # Upload checks are advisory; the backend remains the authority.
    MAX_UPLOAD_BYTES: int = int(os.environ.get("MAX_UPLOAD_BYTES", str(TEN_MEGABYTES)))
    ALLOWED_UPLOAD_TYPES: tuple[str, ...] = (
        "image/png",
        "image/jpeg",
        "image/jpg",
        "application/pdf",
    )

    # Drafts share the session cookie, which browsers cap near 4 KB.
    MAX_DRAFT_BYTES: int = int(os.environ.get("MAX_DRAFT_BYTES", "1536"))

    PAGE_SIZE: int = int(os.environ.get("PAGE_SIZE", "10"))
    FETCH_WORKERS: int = int(os.environ.get("FETCH_WORKERS", "4"))

    SESSION_COOKIE_HTTPONLY: bool = True
    SESSION_COOKIE_SAMESITE: str = os.environ.get("SESSION_COOKIE_SAMESITE", "Lax")
    SESSION_COOKIE_SECURE: bool = (
        os.environ.get("SESSION_COOKIE_SECURE", "false").strip().lower() == "true"
    )


class DevelopmentConfig(Config):
    """Configuration for local development."""

    DEBUG: bool = True
    TESTING: bool = False


class TestingConfig(Config):
    """Configuration for automated tests."""

    DEBUG: bool = True
    TESTING: bool = True

    API_BASE_URL: str = os.environ.get("TEST_API_BASE_URL", "http://backend.test/api")
    API_TIMEOUT: int = int(os.environ.get("TEST_API_TIMEOUT", "1"))
    PAGE_SIZE: int = 5


class ProductionConfig(Config):
    """Configuration for production deployments."""

    DEBUG: bool = False
    TESTING: bool = False
    SESSION_COOKIE_SECURE: bool = (
        os.environ.get("SESSION_COOKIE_SECURE", "true").strip().lower() == "true"
    )


# Configuration mapping for easy access
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}


def get_config(env: str | None = None) -> type[Config]:
    """
    Look up and return the configuration class for the given environment.

    Args:
        env: Environment name (development, testing, production).
             When None, falls back to FLASK_ENV.

    Returns:
        The selected configuration class.
    """
    if env is None:
        env = os.environ.get("FLASK_ENV", "development")
    return config.get(env, config["default"])
