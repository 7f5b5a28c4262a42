from __future__ import annotations

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmbeddingConfig(BaseModel):
    # OpenAI-compatible endpoint (llama.cpp server, vLLM, OpenAI itself)
    base_url: str = "http://127.0.0.1:8081"
    model: str = "text-embedding-3-small"
    api_key: SecretStr | None = None

    model_config = {"extra": "ignore"}


class ChatConfig(BaseModel):
    # Fast model for "should I retrieve more?" verdicts and history summaries
    base_url: str = "http://127.0.0.1:8080"
    model: str = "gpt-4o-mini"
    api_key: SecretStr | None = None
    temperature: float | None = 0.0
    max_tokens: int | None = 512

    model_config = {"extra": "ignore"}


class VectorStoreConfig(BaseModel):
    backend: str = "chroma"
    path: str = "chroma_db"
    collection: str = "documents"

    model_config = {"extra": "ignore"}

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        allowed = {"chroma", "memory"}
        if v not in allowed:
            raise ValueError(f"vector_store.backend must be one of {sorted(allowed)}")
        return v


class RetrievalConfig(BaseModel):
    default_limit: int = Field(default=5, ge=1)
    max_limit: int = Field(default=100, ge=1)

    model_config = {"extra": "ignore"}


class ContextExpansionConfig(BaseModel):
    small_file_max_chunks: int = 5
    coverage_threshold: float = 0.3
    default_total_chunks: int = 100
    # Sources whose chunks are records, not slices of a file
    virtual_sources: list[str] = ["goodreads", "paperless", "google-calendar", "email"]
    max_document_chars: int = 200_000

    model_config = {"extra": "ignore"}


class IterativeRetrievalConfig(BaseModel):
    enabled: bool = True
    max_chunks: int = 20
    default_additional_chunks: int = 5
    min_additional_chunks: int = 1
    max_additional_chunks: int = 15

    model_config = {"extra": "ignore"}

    @model_validator(mode="after")
    def validate_chunk_bounds(self) -> "IterativeRetrievalConfig":
        if not 1 <= self.min_additional_chunks <= self.default_additional_chunks <= self.max_additional_chunks:
            raise ValueError(
                "iterative_retrieval needs 1 <= min_additional_chunks <= "
                "default_additional_chunks <= max_additional_chunks"
            )
        return self


class SmartRetrievalConfig(BaseModel):
    # Route each query to a plain search or the source-focusing retriever
    query_routing: bool = True
    max_chunks: int = Field(default=35, ge=1)

    model_config = {"extra": "ignore"}


class ContextWindowConfig(BaseModel):
    max_context_tokens: int = Field(default=8000, ge=1)
    strategy: str = "smart"
    window_size: int = Field(default=10, ge=1)

    model_config = {"extra": "ignore"}

    @field_validator("strategy")
    @classmethod
    def validate_strategy(cls, v: str) -> str:
        allowed = {"sliding", "token", "smart"}
        if v not in allowed:
            raise ValueError(f"context_window.strategy must be one of {sorted(allowed)}")
        return v


class AttributionConfig(BaseModel):
    min_threshold: float = 0.4
    std_multiplier: float = 0.5
    top_fraction: float = 0.4
    max_concurrency: int = 8

    model_config = {"extra": "ignore"}


class RegistryConfig(BaseModel):
    is_configured_timeout: float = 5.0

    model_config = {"extra": "ignore"}


class SourcesConfig(BaseModel):
    enabled: list[str] = ["files", "paperless", "goodreads", "google-calendar", "email"]
    documents_folder: str | None = None
    paperless_url: str | None = None
    paperless_api_token: SecretStr | None = None
    goodreads_enabled: bool = True

    model_config = {"extra": "ignore"}


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_to_console: bool = True
    log_to_file: bool = False
    log_dir: str | None = None
    pii_redaction: bool = False

    model_config = {"extra": "ignore"}


class DocentSettings(BaseSettings):
    """
    Root configuration object using pydantic-settings.
    """

    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    vector_store: VectorStoreConfig = Field(default_factory=VectorStoreConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    context_expansion: ContextExpansionConfig = Field(default_factory=ContextExpansionConfig)
    iterative_retrieval: IterativeRetrievalConfig = Field(
        default_factory=IterativeRetrievalConfig
    )
    smart_retrieval: SmartRetrievalConfig = Field(default_factory=SmartRetrievalConfig)
    context_window: ContextWindowConfig = Field(default_factory=ContextWindowConfig)
    attribution: AttributionConfig = Field(default_factory=AttributionConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="DOCENT_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )
