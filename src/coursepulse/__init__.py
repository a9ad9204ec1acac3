"""Event attribution and A/B tracking service."""

__version__ = "0.1.0"
