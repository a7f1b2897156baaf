"""Wiring of the engine and its collaborators from settings."""

import logging
from typing import Optional

from .challenges import ChallengeCatalog, ChallengeEngine
from .config import Settings
from .inspector import AzureResourceInspector
from .storage import ProgressCache, SqliteProgressStore

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    """Install a basic log handler at the configured level."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def create_engine(settings: Optional[Settings] = None) -> ChallengeEngine:
    """Create a ready-to-use engine.

    Connects the SQLite store, builds the catalog once and creates the
    Azure inspector. Callers own shutdown through ``close_engine``.
    """
    settings = settings or Settings()

    store = SqliteProgressStore(settings.database_path)
    await store.connect()

    catalog = ChallengeCatalog.build(settings.catalog_config())
    engine = ChallengeEngine(
        catalog,
        ProgressCache(store),
        AzureResourceInspector.from_settings(settings),
        check_timeout=settings.check_timeout,
    )
    logger.info("Loaded %d challenges, progress stored in %s", len(catalog), settings.database_path)
    return engine


async def close_engine(engine: ChallengeEngine) -> None:
    """Release the store connection and HTTP client held by an engine."""
    if isinstance(engine.inspector, AzureResourceInspector):
        await engine.inspector.aclose()
    store = engine.cache.store
    if isinstance(store, SqliteProgressStore):
        await store.close()
