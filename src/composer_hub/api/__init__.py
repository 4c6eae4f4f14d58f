"""HTTP routes for the package repository."""

from .routes import router

__all__ = ["router"]
