"""Persistence-backed repositories."""
