"""WSGI entry point for the team board application."""

import os

from teamboard import create_app

app = create_app(os.getenv("FLASK_ENV", "production"))
