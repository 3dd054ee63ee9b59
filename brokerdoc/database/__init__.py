"""Persistence layer: SQLAlchemy models."""
