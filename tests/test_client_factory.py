from docent.config import ChatConfig, EmbeddingConfig
from docent.llm import ClientFactory


def test_embedding_client_targets_v1_endpoint():
    client = ClientFactory().create_embedding_client(
        EmbeddingConfig(base_url="http://localhost:8081/", model="nomic-embed")
    )

    assert client.model == "nomic-embed"
    assert client.openai_api_base == "http://localhost:8081/v1"
    assert client.check_embedding_ctx_length is False


def test_chat_client_skips_unset_params():
    client = ClientFactory().create_chat_client(
        ChatConfig(base_url="http://localhost:8080/v1", model="small", api_key="k", max_tokens=None)
    )

    assert client.model_name == "small"
    assert client.openai_api_base == "http://localhost:8080/v1"
    assert client.temperature == 0.0
    assert client.max_tokens is None
