import logging

from dotask.core.config import Settings
from dotask.core.database import create_db_engine, init_db
from dotask.store.base import Store
from dotask.store.memory import MemoryStore
from dotask.store.sql import SqlStore

logger = logging.getLogger(__name__)


def create_store(settings: Settings) -> Store:
    """Choisit le backend selon STORAGE_BACKEND"""
    if settings.storage_backend == "memory":
        logger.info("Using in-memory store")
        return MemoryStore()

    engine = create_db_engine(settings.database_url)
    init_db(engine)
    logger.info("Using SQL store, tables ready")
    return SqlStore(engine)


__all__ = ["Store", "SqlStore", "MemoryStore", "create_store"]
