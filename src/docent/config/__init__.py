from .loader import (
    PROJECT_ROOT,
    ConfigManager,
    YamlConfigSettingsSource,
    config_manager,
)
from .schema import (
    AttributionConfig,
    ChatConfig,
    ContextExpansionConfig,
    ContextWindowConfig,
    DocentSettings,
    EmbeddingConfig,
    IterativeRetrievalConfig,
    LoggingConfig,
    RegistryConfig,
    RetrievalConfig,
    SmartRetrievalConfig,
    SourcesConfig,
    VectorStoreConfig,
)

__all__ = [
    "PROJECT_ROOT",
    "ConfigManager",
    "YamlConfigSettingsSource",
    "config_manager",
    "DocentSettings",
    "AttributionConfig",
    "ChatConfig",
    "ContextExpansionConfig",
    "ContextWindowConfig",
    "EmbeddingConfig",
    "IterativeRetrievalConfig",
    "LoggingConfig",
    "RegistryConfig",
    "RetrievalConfig",
    "SmartRetrievalConfig",
    "SourcesConfig",
    "VectorStoreConfig",
]
