from .chroma_store import ChromaVectorStore
from .in_memory_store import InMemoryVectorStore
from .vector_store import VectorStore, distance_to_score

__all__ = ["VectorStore", "ChromaVectorStore", "InMemoryVectorStore", "distance_to_score"]
