"""
Source plugins and the registry that holds them.

``create_default_registry`` builds a registry with the built-in plugins
that are enabled in the ``sources`` settings section.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .base import (
    DataSourceCapabilities,
    DataSourcePlugin,
    MetadataField,
    Scanner,
    ScanOptions,
    ScanResult,
    ToolDefinition,
    ToolExecutingPlugin,
    ToolParameter,
)
from .formatting import format_metadata_results
from .plugins import CalendarPlugin, EmailPlugin, FilesPlugin, GoodreadsPlugin, PaperlessPlugin
from .registry import SourceRegistry

if TYPE_CHECKING:
    from ..config.schema import DocentSettings
    from ..memory.vector_store import VectorStore
    from .plugins import EventProvider, MailService

logger = logging.getLogger(__name__)


def create_default_registry(
    store: VectorStore,
    settings: DocentSettings,
    event_provider: EventProvider | None = None,
    mail_service: MailService | None = None,
    scanners: dict[str, Scanner] | None = None,
) -> SourceRegistry:
    scanners = scanners or {}
    sources = settings.sources
    registry = SourceRegistry(is_configured_timeout=settings.registry.is_configured_timeout)

    candidates: list[DataSourcePlugin] = [
        FilesPlugin(store, documents_folder=sources.documents_folder, scanner=scanners.get("files")),
        PaperlessPlugin(
            store,
            url=sources.paperless_url,
            api_token=(
                sources.paperless_api_token.get_secret_value() if sources.paperless_api_token else None
            ),
            scanner=scanners.get("paperless"),
        ),
        GoodreadsPlugin(store, scanner=scanners.get("goodreads")),
        CalendarPlugin(store, event_provider=event_provider, scanner=scanners.get("google-calendar")),
        EmailPlugin(mail_service=mail_service),
    ]
    for plugin in candidates:
        if plugin.name == "goodreads" and not sources.goodreads_enabled:
            continue
        if plugin.name in sources.enabled:
            registry.register(plugin)
        else:
            logger.debug("Source plugin %s disabled in settings", plugin.name)
    return registry


__all__ = [
    "DataSourceCapabilities",
    "DataSourcePlugin",
    "MetadataField",
    "Scanner",
    "ScanOptions",
    "ScanResult",
    "SourceRegistry",
    "ToolDefinition",
    "ToolExecutingPlugin",
    "ToolParameter",
    "create_default_registry",
    "format_metadata_results",
]
