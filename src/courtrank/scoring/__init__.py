# src/courtrank/scoring/__init__.py

"""Pure scoring functions: points, streaks and time windows."""
