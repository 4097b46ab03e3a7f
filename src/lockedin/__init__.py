"""Locked In — commitment contract core."""

__version__ = "0.1.0"
