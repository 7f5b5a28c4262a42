import logging
from typing import Any

from langchain_openai import ChatOpenAI, OpenAIEmbeddings

from ..config.schema import ChatConfig, EmbeddingConfig

logger = logging.getLogger(__name__)


def _api_base(base_url: str) -> str:
    base_url = base_url.rstrip("/")
    if not base_url.endswith("/v1"):
        return f"{base_url}/v1"
    return base_url


class ClientFactory:
    """
    Creates LangChain clients (ChatOpenAI, OpenAIEmbeddings) for
    OpenAI-compatible endpoints.
    """

    def create_embedding_client(self, config: EmbeddingConfig) -> OpenAIEmbeddings:
        api_base = _api_base(config.base_url)
        api_key = config.api_key.get_secret_value() if config.api_key else "dummy-key"

        logger.info("Creating OpenAIEmbeddings client for '%s' at %s", config.model, api_base)
        return OpenAIEmbeddings(
            model=config.model,
            base_url=api_base,
            api_key=api_key,
            # Local servers reject pre-tokenized input
            check_embedding_ctx_length=False,
        )

    def create_chat_client(self, config: ChatConfig) -> ChatOpenAI:
        api_base = _api_base(config.base_url)
        init_kwargs: dict[str, Any] = {
            "model": config.model,
            "base_url": api_base,
            "api_key": config.api_key.get_secret_value() if config.api_key else "dummy-key",
        }
        for param in ("temperature", "max_tokens"):
            value = getattr(config, param)
            if value is not None:
                init_kwargs[param] = value

        logger.info("Creating ChatOpenAI client for '%s' at %s", config.model, api_base)
        return ChatOpenAI(**init_kwargs)
