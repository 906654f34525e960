"""
pytest configuration and fixtures for estate_store tests.

Contract tests take the `storage` fixture and run once per backend.
"""
from datetime import datetime, timedelta

import pytest

from estate_store.core.database import create_db_engine
from estate_store.storage import DatabaseStorage, MemoryStorage

BASE_TIME = datetime(2024, 3, 1, 12, 0, 0)


def make_storage(backend: str, db_dir=None):
    if backend == 'memory':
        return MemoryStorage()
    if backend == 'sqlite-file':
        # Pooled connections to one database file, as in development
        return DatabaseStorage(database_url=f"sqlite:///{db_dir / 'estate.db'}")
    # Private in-memory SQLite database per store
    return DatabaseStorage(engine=create_db_engine('sqlite://', echo=False))


@pytest.fixture(params=['memory', 'database'])
def storage(request):
    """A fresh, empty store for each backend"""
    store = make_storage(request.param)
    yield store
    engine = getattr(store, 'engine', None)
    if engine is not None:
        engine.dispose()


@pytest.fixture
def at():
    """Timestamp `minutes` after a fixed base time"""
    def _at(minutes: int = 0) -> datetime:
        return BASE_TIME + timedelta(minutes=minutes)
    return _at


@pytest.fixture
def sample_user():
    """Sample customer data for testing."""
    return {
        "id": "user-001",
        "username": "jane",
        "email": "jane@example.com",
        "password": "secret123",
        "role": "user",
        "first_name": "Jane",
        "last_name": "Doe",
        "wave_balance": 2,
        "created_at": BASE_TIME,
    }


@pytest.fixture
def sample_property():
    """Sample property data for testing."""
    return {
        "title": "Family House in Erbil",
        "description": "Quiet street close to schools",
        "type": "house",
        "listing_type": "sale",
        "price": "250000",
        "bedrooms": 3,
        "bathrooms": 2,
        "area": 180,
        "address": "100 Meter Road",
        "city": "Erbil",
        "country": "Iraq",
        "amenities": ["Garden", "Parking"],
    }


@pytest.fixture
def agent(storage, sample_user):
    """A customer with a wave balance of 2"""
    return storage.create_user(sample_user)


@pytest.fixture
def admin(storage):
    return storage.create_user({
        "id": "admin-001",
        "username": "admin",
        "email": "admin@example.com",
        "password": "admin123",
        "role": "super_admin",
        "wave_balance": 0,
        "created_at": BASE_TIME - timedelta(days=1),
    })


@pytest.fixture
def wave(storage, admin):
    return storage.create_wave({
        "id": "wave-premium",
        "name": "Premium Wave",
        "color": "#F59E0B",
        "created_by": admin["id"],
    })


@pytest.fixture
def add_property(storage, sample_property, at):
    """Create a property from the sample, overriding any fields"""
    counter = {'n': 0}

    def _add(**overrides):
        counter['n'] += 1
        data = {**sample_property, 'created_at': at(counter['n'])}
        data.update(overrides)
        return storage.create_property(data)
    return _add


@pytest.fixture
def storage_factory(tmp_path):
    """Build stores by backend name; SQL engines are disposed afterwards"""
    created = []

    def _factory(backend: str):
        store = make_storage(backend, tmp_path / f"db{len(created)}")
        created.append(store)
        return store
    yield _factory
    for store in created:
        engine = getattr(store, 'engine', None)
        if engine is not None:
            engine.dispose()
