"""Runtime configuration."""

from .settings import CatalogConfig, Settings

__all__ = ["CatalogConfig", "Settings"]
