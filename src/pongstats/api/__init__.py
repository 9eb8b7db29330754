# src/pongstats/api/__init__.py

"""HTTP routers for the pongstats API."""
