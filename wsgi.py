"""
WSGI / Flask-Migrate entry point.

Usage:
    flask --app wsgi db migrate -m "description"
    flask --app wsgi db upgrade
    flask --app wsgi seed-company "Acme Manufacturing" --admin-email admin@acme.test
    gunicorn wsgi:app
"""

from mfgops import create_app

app = create_app()
