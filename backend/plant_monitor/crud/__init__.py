from plant_monitor.core.config import Settings
from plant_monitor.core.database import create_db_engine
from plant_monitor.crud.base import ReadingStore
from plant_monitor.crud.crud_reading import SQLReadingStore
from plant_monitor.crud.memory import InMemoryReadingStore


def build_store(settings: Settings) -> ReadingStore:
    backend = settings.storage_backend.strip().lower()
    if backend == "memory":
        return InMemoryReadingStore()
    if backend == "sql":
        return SQLReadingStore(create_db_engine(settings.database_url))
    raise ValueError(f"Unknown STORAGE_BACKEND '{settings.storage_backend}', expected 'sql' or 'memory'")


__all__ = ["InMemoryReadingStore", "ReadingStore", "SQLReadingStore", "build_store"]
