"""Tests for settings loading."""

import pytest
import yaml

from hashbatch.config import Settings, sanitize_url


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in [
        "DATABASE__URL",
        "TRANSPORT__URL",
        "TRANSPORT__BACKEND",
        "IPFS__URL",
        "SCHEDULER__CREATE_NEXT_BATCH_INTERVAL_SECONDS",
        "DATA_DIR",
    ]:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = Settings()
    assert settings.database.backend == "mongodb"
    assert settings.transport.backend == "redis"
    assert settings.ipfs.url == "http://localhost:5001"
    assert settings.scheduler.create_next_batch_interval_seconds == 30


def test_nested_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("TRANSPORT__URL", "redis://queue:6379/2")
    monkeypatch.setenv("SCHEDULER__CREATE_NEXT_BATCH_INTERVAL_SECONDS", "5")

    settings = Settings()
    assert settings.transport.url == "redis://queue:6379/2"
    assert settings.scheduler.create_next_batch_interval_seconds == 5


def test_interval_must_be_positive(monkeypatch) -> None:
    monkeypatch.setenv("SCHEDULER__CREATE_NEXT_BATCH_INTERVAL_SECONDS", "0")
    with pytest.raises(ValueError):
        Settings()


def test_yaml_fills_values_environment_left_unset(monkeypatch, tmp_path) -> None:
    (tmp_path / "data").mkdir()
    (tmp_path / "data" / "config.yaml").write_text(
        yaml.safe_dump(
            {
                "transport": {"url": "redis://from-yaml:6379/0", "consumer_name": "worker-7"},
                "ipfs": {"url": "http://ipfs:5001"},
                "scheduler": {"create_next_batch_interval_seconds": 120},
            }
        )
    )
    monkeypatch.setenv("TRANSPORT__URL", "redis://from-env:6379/0")

    settings = Settings()
    settings.load_yaml_config()

    assert settings.transport.url == "redis://from-env:6379/0"
    assert settings.transport.consumer_name == "worker-7"
    assert settings.ipfs.url == "http://ipfs:5001"
    assert settings.scheduler.create_next_batch_interval_seconds == 120


def test_missing_yaml_keeps_defaults() -> None:
    settings = Settings()
    settings.load_yaml_config()
    assert settings.scheduler.create_next_batch_interval_seconds == 30


def test_invalid_yaml_raises(tmp_path) -> None:
    (tmp_path / "data").mkdir()
    (tmp_path / "data" / "config.yaml").write_text("transport: [unclosed")
    settings = Settings()
    with pytest.raises(yaml.YAMLError):
        settings.load_yaml_config()


@pytest.mark.parametrize(
    "url, expected",
    [
        ("mongodb://user:secret@db:27017", "mongodb://user:***@db:27017"),
        ("redis://:secret@queue:6379/0", "redis://:***@queue:6379/0"),
        ("redis://token@queue:6379", "redis://***@queue:6379"),
        ("http://localhost:5001", "http://localhost:5001"),
    ],
)
def test_sanitize_url(url, expected) -> None:
    assert sanitize_url(url) == expected
