# src/pongstats/db/__init__.py

"""Database models and session management."""
