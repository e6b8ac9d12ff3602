"""Group movie night voting: vote budgets, live standings and service health."""

__version__ = "0.1.0"
