"""Composer package repository for locally installed plugins and themes."""

__version__ = "0.1.0"
