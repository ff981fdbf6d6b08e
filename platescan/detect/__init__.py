"""Meal detection: GPT and Google Vision detectors behind a mode router."""
