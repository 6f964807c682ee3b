"""WSGI entry point: ``gunicorn coursecart.wsgi:app``."""
from coursecart.factory import create_app

app = create_app()
