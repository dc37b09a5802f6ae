"""
Model package.

Exposes the shared Flask-SQLAlchemy ``db`` handle. Domain model modules
(``access``, ``catalog``, ``production``) import it from here and are loaded by
``create_app`` so that ``db.create_all()`` and Flask-Migrate see every table.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
