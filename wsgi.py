"""WSGI entry point for the dashboard service."""

import os

from dashboard_app import create_app

app = create_app(os.getenv("FLASK_ENV", "production"))
