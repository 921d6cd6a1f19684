# src/courtrank/api/__init__.py

"""HTTP routers for the CourtRank API."""
