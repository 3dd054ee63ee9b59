"""Repositories wrapping async SQLAlchemy sessions."""
