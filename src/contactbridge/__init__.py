"""Bidirectional contact synchronization between the platform and external services."""

__version__ = "0.1.0"
