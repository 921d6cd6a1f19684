# src/courtrank/__init__.py

"""CourtRank: leaderboard and points aggregation for basketball training."""
