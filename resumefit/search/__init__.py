"""Search module: embeddings, vector collection backends and the soft-fail store."""

from .backends import ChromaBackend, CollectionBackend, FaissBackend, create_backend
from .embedder import Embedder, embed_texts, get_model
from .store import VectorStore, sanitize_metadata

__all__ = [
    "ChromaBackend",
    "CollectionBackend",
    "Embedder",
    "FaissBackend",
    "VectorStore",
    "create_backend",
    "embed_texts",
    "get_model",
    "sanitize_metadata",
]
