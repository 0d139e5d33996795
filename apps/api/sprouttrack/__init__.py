"""Sprout Track: a family baby-activity tracker API."""

__version__ = "0.9.0"
