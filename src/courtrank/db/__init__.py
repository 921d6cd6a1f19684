# src/courtrank/db/__init__.py

"""Persistence layer: models and session management."""
