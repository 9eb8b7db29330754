# src/pongstats/services/__init__.py

"""Service layer: match lifecycle and stats synchronisation."""
