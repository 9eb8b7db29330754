# src/pongstats/__init__.py

"""Ping-pong match tracking with derived player statistics."""

__version__ = "0.1.0"
