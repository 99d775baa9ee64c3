"""Study timer, streak and planner core."""

__version__ = "2.0.0"
