"""WSGI entry point: ``gunicorn wsgi:app``."""

from users_api import create_app

app = create_app()
