# src/courtrank/services/__init__.py

"""Business logic for the leaderboard engine."""
