"""
Knowledge-base editor — SQLAlchemy models package.

The shared ``db`` handle lives here so that every model module and service can
``from kb_editor.models import db`` without importing the app factory.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
