"""WSGI entry point for gunicorn.

Usage:
    gunicorn notification_api.wsgi:app --bind 0.0.0.0:8000
"""
from delivery_core.bootstrap import build_services

from notification_api.app import create_app

app = create_app(build_services())
