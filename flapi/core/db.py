"""
Database Configuration

Provides the global SQLAlchemy instance `db` used across all models.
Initialized in the app factory (flapi/flask_app.py) with app context.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
