"""
Wellspring GEODE Workflow Service
SQLAlchemy database instance shared by all models.

Usage:
    from wellspring.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
