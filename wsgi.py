"""WSGI entry point for the portal."""

import os

from portal_app import create_app

app = create_app(os.getenv("FLASK_ENV", "production"))
