"""
Tests for settings defaults and the layered config loader.
"""

import pytest
import yaml
from pydantic import ValidationError

from docent.config import ConfigManager, DocentSettings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("DOCENT_CONFIG_PATH", raising=False)
    monkeypatch.delenv("DOCENT_RETRIEVAL__DEFAULT_LIMIT", raising=False)


def write_config(tmp_path, data):
    path = tmp_path / "config.yml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


def test_defaults():
    settings = DocentSettings()

    assert settings.retrieval.default_limit == 5
    assert settings.retrieval.max_limit == 100
    assert settings.context_expansion.small_file_max_chunks == 5
    assert settings.context_expansion.coverage_threshold == 0.3
    assert settings.iterative_retrieval.max_chunks == 20
    assert settings.attribution.min_threshold == 0.4
    assert settings.vector_store.backend == "chroma"
    assert settings.smart_retrieval.query_routing is True
    assert settings.context_window.strategy == "smart"
    assert settings.context_window.max_context_tokens == 8000


def test_invalid_backend_is_rejected():
    with pytest.raises(ValidationError):
        DocentSettings(vector_store={"backend": "redis"})


@pytest.mark.parametrize(
    "section",
    [
        {"iterative_retrieval": {"default_additional_chunks": 20}},
        {"iterative_retrieval": {"min_additional_chunks": 0}},
        {"context_window": {"strategy": "fifo"}},
    ],
)
def test_inconsistent_sections_are_rejected(section):
    with pytest.raises(ValidationError):
        DocentSettings(**section)


def test_yaml_values_are_loaded(tmp_path):
    path = write_config(tmp_path, {"retrieval": {"default_limit": 7}, "sources": {"enabled": ["files"]}})

    manager = ConfigManager()
    manager.load_config(config_path=path)

    assert manager.settings.retrieval.default_limit == 7
    assert manager.settings.retrieval.max_limit == 100
    assert manager.settings.sources.enabled == ["files"]


def test_env_overrides_yaml(tmp_path, monkeypatch):
    path = write_config(tmp_path, {"retrieval": {"default_limit": 7, "max_limit": 50}})
    monkeypatch.setenv("DOCENT_RETRIEVAL__DEFAULT_LIMIT", "9")

    manager = ConfigManager()
    manager.load_config(config_path=path)

    assert manager.settings.retrieval.default_limit == 9
    assert manager.settings.retrieval.max_limit == 50


def test_invalid_yaml_falls_back_to_defaults(tmp_path):
    path = write_config(tmp_path, {"vector_store": {"backend": "redis"}})

    manager = ConfigManager()
    manager.load_config(config_path=path)

    assert manager.settings.vector_store.backend == "chroma"


def test_missing_file_uses_defaults(tmp_path):
    manager = ConfigManager()
    manager.load_config(config_path=tmp_path / "absent.yml")

    assert manager.settings.retrieval.default_limit == 5


def test_load_is_cached_until_forced(tmp_path):
    path = write_config(tmp_path, {"retrieval": {"default_limit": 7}})
    manager = ConfigManager()
    manager.load_config(config_path=path)

    write_config(tmp_path, {"retrieval": {"default_limit": 8}})
    manager.load_config(config_path=path)
    assert manager.settings.retrieval.default_limit == 7

    manager.load_config(force_reload=True, config_path=path)
    assert manager.settings.retrieval.default_limit == 8


def test_settings_are_reached_through_the_manager():
    import docent.config as config

    assert isinstance(config.config_manager, ConfigManager)
    assert not hasattr(config, "settings")
    assert "settings" not in config.__all__
