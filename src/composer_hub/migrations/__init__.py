"""Alembic migration scripts for the API key store."""
