"""
e-Gram Panchayat portal Flask application factory.

Provides the ``create_app`` factory that assembles the citizen portal.
The portal is a Backend-for-Frontend (BFF): it renders Jinja pages and
drives the Panchayat REST backend on the user's behalf through a
per-request application state store.  It never holds data of its own;
every record is a re-fetchable copy of the backend's.

Key Concepts Demonstrated:
- Application factory pattern (``create_app``)
- Blueprint-based route registration
- Per-request store construction (see :mod:`portal_app.routes.views`)
"""

from __future__ import annotations

import logging

from flask import Flask

from config import get_config

from .models import priority_badge, status_badge, status_label

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(config_name: str | None = None) -> Flask:
    """
    Create and configure the portal application.

    Args:
        config_name: Optional configuration environment name
            (``"development"``, ``"testing"``, ``"production"``).  When
            *None*, the value is read from the ``FLASK_ENV`` environment
            variable, defaulting to ``"development"``.

    Returns:
        A configured :class:`~flask.Flask` application.
    """
    app = Flask(__name__, instance_relative_config=True)
    config_class = get_config(config_name)
    app.config.from_object(config_class)

    logger.info("Creating portal app with config: %s", config_class.__name__)

    app.jinja_env.filters["status_badge"] = status_badge
    app.jinja_env.filters["priority_badge"] = priority_badge
    app.jinja_env.filters["status_label"] = status_label

    # Imported here so the blueprints can use helpers defined in this package.
    from .routes.admin import admin_bp
    from .routes.views import views_bp

    app.register_blueprint(views_bp)
    app.register_blueprint(admin_bp)
    return app
