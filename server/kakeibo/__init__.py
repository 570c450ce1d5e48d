"""Kakeibo: personal-finance dashboard server."""

__version__ = "1.0.0"
