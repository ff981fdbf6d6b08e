"""Meal logs: per-user JSON entries, daily summaries and quality scores."""
