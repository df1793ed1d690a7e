"""Pacer - deadline-aware study block scheduler."""

__version__ = "0.1.0"
