"""Declarative base for composer-hub models."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
