"""WSGI entry point for gunicorn.

Usage:
    gunicorn push_gateway.wsgi:app --bind 0.0.0.0:8000
"""
from push_gateway.app import build_service, create_app

app = create_app(build_service())
