import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple, Type

import yaml
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from .schema import DocentSettings

logger = logging.getLogger(__name__)


def _find_project_root() -> Path:
    """
    Locate the directory holding config.yml, secrets.yaml and .env.

    ``DOCENT_ROOT`` wins; otherwise the nearest ancestor of this package with
    a pyproject.toml; otherwise the working directory (installed wheels).
    """
    env_root = os.getenv("DOCENT_ROOT")
    if env_root:
        return Path(env_root).resolve()

    for candidate in Path(__file__).resolve().parents:
        if (candidate / "pyproject.toml").exists():
            return candidate
    return Path.cwd()


PROJECT_ROOT = _find_project_root()
SECRETS_PATH = PROJECT_ROOT / "secrets.yaml"

load_dotenv(dotenv_path=PROJECT_ROOT / ".env")


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """
    Settings source backed by one YAML mapping.

    A missing file contributes nothing; an unreadable or non-mapping file is
    logged and ignored so the remaining sources still apply.
    """

    def __init__(self, settings_cls: Type[BaseSettings], yaml_path: Path):
        super().__init__(settings_cls)
        self.yaml_path = yaml_path

    def get_field_value(self, field: Any, field_name: str) -> Tuple[Any, str, bool]:
        # __call__ returns the whole mapping at once
        return None, field_name, False

    def __call__(self) -> Dict[str, Any]:
        if not self.yaml_path.is_file():
            return {}
        try:
            data = yaml.safe_load(self.yaml_path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to load YAML config from %s: %s", self.yaml_path, e)
            return {}
        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.error("YAML config at %s is not a mapping; ignoring it", self.yaml_path)
            return {}
        return data


def resolve_config_path() -> Path:
    env_config = os.getenv("DOCENT_CONFIG_PATH")
    return Path(env_config) if env_config else PROJECT_ROOT / "config.yml"


def _settings_class(yaml_paths: Sequence[Path]) -> Type[DocentSettings]:
    """DocentSettings whose YAML layers sit below env and .env, in the given order."""

    class LayeredDocentSettings(DocentSettings):
        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: Type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,
            file_secret_settings: PydanticBaseSettingsSource,
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            yaml_sources = tuple(YamlConfigSettingsSource(settings_cls, p) for p in yaml_paths)
            return (init_settings, env_settings, dotenv_settings, *yaml_sources, file_secret_settings)

    return LayeredDocentSettings


class ConfigManager:
    """
    Builds DocentSettings on first use.

    Priority: init > env > .env > secrets.yaml > config.yml > defaults.
    Settings that fail validation are replaced by the defaults.
    """

    def __init__(self) -> None:
        self._settings: Optional[DocentSettings] = None

    def load_config(self, force_reload: bool = False, config_path: Path | None = None) -> None:
        if self._settings is not None and not force_reload:
            return

        yaml_path = config_path or resolve_config_path()
        settings_cls = _settings_class([SECRETS_PATH, yaml_path])
        try:
            self._settings = settings_cls()
            logger.info("Settings loaded (secrets: %s, config: %s)", SECRETS_PATH, yaml_path)
        except Exception as e:
            logger.error("Invalid settings, falling back to defaults: %s", e, exc_info=True)
            self._settings = DocentSettings()

    @property
    def settings(self) -> DocentSettings:
        if self._settings is None:
            self.load_config()
        assert self._settings is not None
        return self._settings


config_manager = ConfigManager()

