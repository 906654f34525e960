"""
Storage backends.

`create_storage()` picks the implementation named by STORAGE_BACKEND:
"database" (SQLAlchemy) or "memory" (process-local, volatile).
"""
import logging
from typing import Optional

from estate_store.core.config import settings
from estate_store.core.exceptions import ValidationError
from .base import Storage
from .database import DatabaseStorage
from .memory import MemoryStorage
from .seed import seed_demo_data

LOGGER = logging.getLogger(__name__)

BACKENDS = ('database', 'memory')


def create_storage(backend: Optional[str] = None, seed: Optional[bool] = None) -> Storage:
    """
    Build the configured storage backend.

    Args:
        backend: "database" or "memory" (defaults to settings.STORAGE_BACKEND)
        seed: Load demo data (defaults to settings.SEED_DEMO_DATA)
    """
    backend = (backend or settings.STORAGE_BACKEND).strip().lower()
    seed = settings.SEED_DEMO_DATA if seed is None else seed

    if backend == 'memory':
        storage = MemoryStorage()
    elif backend == 'database':
        storage = DatabaseStorage()
    else:
        raise ValidationError(f"Unknown storage backend: {backend}")

    LOGGER.info("Using %s storage", backend)
    if seed:
        seed_demo_data(storage)
    return storage


__all__ = [
    'Storage', 'DatabaseStorage', 'MemoryStorage',
    'create_storage', 'seed_demo_data', 'BACKENDS'
]
