"""
Docent core - retrieval facade

Wires the configured components together once:

    from docent import create_core

    core = create_core()
    context = await core.retrieve_context("what did I read about sailing?", source_filter=["goodreads:42"])
    answer = await llm.ainvoke(f"Context:\\n{context.text}\\n\\nQuestion: ...")
    citations = await core.analyze(answer.content, context.results)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from langchain_core.embeddings import Embeddings
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage

from .config import DocentSettings, config_manager
from .config.loader import PROJECT_ROOT
from .llm import ClientFactory
from .memory import ChromaVectorStore, InMemoryVectorStore, VectorStore
from .rag import (
    ContextWindowManager,
    ContextWindowResult,
    FileContentReader,
    RAGContextBuilder,
    RelevanceAnalyzer,
    RetrievalDecision,
    RetrievalEngine,
    RetrievedContext,
    SearchResult,
    SmartRetriever,
    SourceWithRelevance,
    route_query,
    should_retrieve_more,
    should_use_simple_search,
)
from .rag.context_builder import ContentReader
from .rag.engine import SourceSelection
from .sources import SourceRegistry, create_default_registry
from .system import setup_logging_from_config
from .tools import SearchForMoreContextTool, create_retrieval_tool

logger = logging.getLogger(__name__)


def create_vector_store(settings: DocentSettings) -> VectorStore:
    config = settings.vector_store
    if config.backend == "memory":
        return InMemoryVectorStore()

    db_path = Path(config.path)
    if not db_path.is_absolute():
        db_path = PROJECT_ROOT / db_path
    return ChromaVectorStore(str(db_path), config.collection)


@dataclass
class DocentCore:
    settings: DocentSettings
    registry: SourceRegistry
    store: VectorStore
    embeddings: Embeddings
    engine: RetrievalEngine
    smart_retriever: SmartRetriever
    context_builder: RAGContextBuilder
    analyzer: RelevanceAnalyzer
    context_window: ContextWindowManager
    chat_model: BaseChatModel | None = None

    def default_content_reader(self) -> ContentReader | None:
        folder = self.settings.sources.documents_folder
        if not folder:
            return None
        return FileContentReader(
            allowed_roots=[folder],
            max_chars=self.settings.context_expansion.max_document_chars,
        )

    async def retrieve_context(
        self,
        query: str,
        limit: int | None = None,
        source_filter: SourceSelection = "all",
        content_reader: ContentReader | None = None,
        is_first_message: bool = True,
    ) -> RetrievedContext:
        """
        Route the query, search, then assemble the context block with
        small-file expansion.

        Fast-path queries run one plain search. Slow-path queries go through
        the smart retriever, which may narrow the sources; ``limit`` caps its
        chunk count there. With ``smart_retrieval.query_routing`` off every
        query runs a plain search and ``route`` stays None.
        """
        route = None
        if self.settings.smart_retrieval.query_routing:
            route = route_query(query, is_first_message)
            logger.info("Query route: %s", route.reason)

        if route is None or should_use_simple_search(route):
            results = await self.engine.search(query, limit, source_filter)
        else:
            outcome = await self.smart_retriever.smart_search(query, source_filter, limit)
            results = outcome.results

        reader = content_reader or self.default_content_reader()
        context = await self.context_builder.build_context(results, reader)
        context.route = route
        return context

    def create_retrieval_tool(
        self,
        current_query: str,
        current_sources: SourceSelection = "all",
        already_retrieved: list[SearchResult] | None = None,
    ) -> SearchForMoreContextTool | None:
        """The mid-turn retrieval tool, or None when iterative retrieval is disabled."""
        config = self.settings.iterative_retrieval
        if not config.enabled:
            return None
        return create_retrieval_tool(
            self.engine,
            current_query,
            current_sources,
            already_retrieved,
            max_chunks=config.max_chunks,
            min_additional_chunks=config.min_additional_chunks,
            max_additional_chunks=config.max_additional_chunks,
            default_additional_chunks=config.default_additional_chunks,
        )

    async def should_retrieve_more(
        self,
        query: str,
        partial_response: str,
        current_chunk_count: int,
    ) -> RetrievalDecision:
        config = self.settings.iterative_retrieval
        if not config.enabled:
            return RetrievalDecision(False, reason="iterative retrieval disabled")
        return await should_retrieve_more(
            query,
            partial_response,
            current_chunk_count,
            config.max_chunks,
            self.chat_model,
        )

    async def manage_context(
        self,
        messages: list[BaseMessage],
        system_prompt: str = "",
    ) -> ContextWindowResult:
        return await self.context_window.manage_context(messages, system_prompt)

    async def analyze(self, response: str, sources: list[SearchResult]) -> list[SourceWithRelevance]:
        return await self.analyzer.analyze_referenced_sources(response, sources)


def create_core(
    settings: DocentSettings | None = None,
    *,
    embeddings: Embeddings | None = None,
    chat_model: BaseChatModel | None = None,
    store: VectorStore | None = None,
    registry: SourceRegistry | None = None,
    configure_logging: bool = False,
    **registry_kwargs,
) -> DocentCore:
    """
    Build a ``DocentCore`` from settings.

    Args:
        settings: Settings to use (loaded from config.yml/env when None)
        embeddings: Embeddings model (OpenAI-compatible client when None)
        chat_model: Fast chat model for retrieval verdicts and history
            summaries (OpenAI-compatible client from ``chat`` when None)
        store: Chunk store (backend from ``vector_store`` settings when None)
        registry: Source registry (built-in plugins from ``sources`` when None)
        configure_logging: Apply the ``logging`` settings section first
        **registry_kwargs: Passed to ``create_default_registry``
            (event_provider, mail_service, scanners)
    """
    settings = settings or config_manager.settings
    if configure_logging:
        setup_logging_from_config(settings.logging)

    factory = ClientFactory()
    if embeddings is None:
        embeddings = factory.create_embedding_client(settings.embedding)
    if chat_model is None:
        chat_model = factory.create_chat_client(settings.chat)
    if store is None:
        store = create_vector_store(settings)
    if registry is None:
        registry = create_default_registry(store, settings, **registry_kwargs)

    engine = RetrievalEngine(
        embeddings,
        store,
        registry=registry,
        default_limit=settings.retrieval.default_limit,
        max_limit=settings.retrieval.max_limit,
    )
    smart_retriever = SmartRetriever(engine, max_chunks=settings.smart_retrieval.max_chunks)
    expansion = settings.context_expansion
    context_builder = RAGContextBuilder(
        small_file_max_chunks=expansion.small_file_max_chunks,
        coverage_threshold=expansion.coverage_threshold,
        default_total_chunks=expansion.default_total_chunks,
        virtual_sources=expansion.virtual_sources,
    )
    attribution = settings.attribution
    analyzer = RelevanceAnalyzer(
        embeddings,
        min_threshold=attribution.min_threshold,
        std_multiplier=attribution.std_multiplier,
        top_fraction=attribution.top_fraction,
        max_concurrency=attribution.max_concurrency,
    )
    window = settings.context_window
    context_window = ContextWindowManager(
        chat_model,
        max_context_tokens=window.max_context_tokens,
        strategy=window.strategy,
        window_size=window.window_size,
    )

    logger.info(
        "Docent core ready: store=%s, sources=%s",
        type(store).__name__,
        [p.name for p in registry.get_all()],
    )
    return DocentCore(
        settings=settings,
        registry=registry,
        store=store,
        embeddings=embeddings,
        engine=engine,
        smart_retriever=smart_retriever,
        context_builder=context_builder,
        analyzer=analyzer,
        context_window=context_window,
        chat_model=chat_model,
    )
