import io
import json
import logging

import pytest

from estate_store import cli
from estate_store.core.config import Settings
from estate_store.core.logging import LOGGER_NAME, setup_logging
from estate_store.core.exceptions import ValidationError
from estate_store.storage import MemoryStorage, create_storage


@pytest.fixture
def seeded(monkeypatch):
    """CLI commands run against one seeded in-memory store"""
    store = MemoryStorage(seed=True)
    monkeypatch.setattr(cli, "create_storage", lambda backend=None, seed=None: store)
    return store


def run(capsys, *argv):
    cli.main(list(argv))
    return json.loads(capsys.readouterr().out)


def test_seeded_memory_store_has_demo_data():
    store = MemoryStorage(seed=True)

    assert store.get_user("admin-001")["role"] == "super_admin"
    assert store.get_wave("wave-premium")["color"] == "#F59E0B"
    assert len(store.get_properties()) == 5
    assert len(store.get_featured_properties()) == 3
    assert store.authenticate_user("Jutyar", "customer123")["id"] == "customer-001"


def test_wave_usage_command(capsys, seeded):
    seeded.update_property("property-001", {"agent_id": "customer-001", "wave_id": "wave-premium"})

    output = run(capsys, "wave-usage", "customer-001")

    assert output == {
        "user_id": "customer-001",
        "role": "user",
        "wave_balance": 10,
        "used": 1,
        "remaining": 9,
    }


def test_clear_properties_requires_confirmation(capsys, seeded):
    with pytest.raises(SystemExit):
        cli.main(["clear-properties"])
    assert "--yes" in capsys.readouterr().out
    assert len(seeded.get_properties()) == 5

    assert run(capsys, "clear-properties", "--yes") == {"deleted": 5}
    assert seeded.get_properties() == []


def test_repair_and_analytics_commands(capsys, seeded):
    seeded.update_user("customer-001", {"wave_balance": 0})
    seeded.add_customer_activity({"user_id": "customer-001", "activity_type": "login", "points": 5})

    assert run(capsys, "repair-wave-balances") == {"updated": 1}
    output = run(capsys, "analytics", "customer-001")
    assert output["points"]["total_points"] == 5
    assert output["analytics"]["total_activities"] == 1


def test_seed_command_is_idempotent(capsys, seeded):
    assert run(capsys, "seed") == {"users": 0, "waves": 0, "properties": 0}


def test_create_storage_selects_backend():
    assert isinstance(create_storage("memory", seed=False), MemoryStorage)
    with pytest.raises(ValidationError):
        create_storage("redis", seed=False)


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.setenv("FEATURED_LIMIT", "3")

    settings = Settings()

    assert settings.STORAGE_BACKEND == "memory"
    assert settings.FEATURED_LIMIT == 3


@pytest.fixture
def package_logger():
    logger = logging.getLogger(LOGGER_NAME)
    level = logger.level
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)


def test_setup_logging_writes_to_stream_and_file(tmp_path, package_logger):
    stream = io.StringIO()
    log_file = tmp_path / "logs" / "estate.log"

    setup_logging("debug", log_file=str(log_file), stream=stream)
    logging.getLogger("estate_store.storage.memory").debug("seeded %s users", 3)

    assert "DEBUG   [estate_store.storage.memory] seeded 3 users" in stream.getvalue()
    assert "seeded 3 users" in log_file.read_text(encoding="utf-8")


def test_setup_logging_replaces_handlers_and_defaults_level(package_logger):
    setup_logging("INFO", stream=io.StringIO())
    logger = setup_logging("chatty", stream=io.StringIO())

    assert logger is package_logger
    assert len(logger.handlers) == 1
    assert logger.level == logging.INFO
