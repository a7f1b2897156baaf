"""Hands-on Azure security challenges with per-user progress tracking."""

__version__ = "0.1.0"
