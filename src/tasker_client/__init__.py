"""Marketplace tasker client: upload pipeline and task lifecycle engine."""

__version__ = "0.1.0"
