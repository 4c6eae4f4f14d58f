"""Application services wired by the API and the command line."""

from .repository_service import RepositoryService

__all__ = ["RepositoryService"]
