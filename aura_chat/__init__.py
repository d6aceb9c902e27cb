"""Aura chat relay and stream consumer."""

__version__ = "0.1.0"
