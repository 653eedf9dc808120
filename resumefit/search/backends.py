"""Vector collection backends.

Both backends expose the same small surface so the store adapter never cares
which one is configured:

- ``heartbeat()`` raises when the backend is unreachable.
- ``get_or_create_collection(name)`` returns a collection with
  ``add(ids, embeddings, documents, metadatas)`` and
  ``query(query_embeddings, n_results, where)``.

Query results follow Chroma's nested-list shape: one inner list per query
embedding, keyed by ``ids``, ``documents``, ``distances`` and ``metadatas``.

All calls are blocking; the store runs them in an executor.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import numpy as np

from .. import config


class CollectionBackend(ABC):
    """Connection to a vector database holding named collections."""

    name = "base"

    @abstractmethod
    def heartbeat(self) -> None:
        """Raise if the backend cannot be reached."""

    @abstractmethod
    def get_or_create_collection(self, name: str):
        ...


class ChromaBackend(CollectionBackend):
    """Chroma server reached over HTTP."""

    name = "chroma"

    def __init__(self, url: str = config.CHROMA_URL):
        self.url = url
        self._client = None

    def _get_client(self):
        if self._client is None:
            import chromadb

            parsed = urlparse(self.url)
            self._client = chromadb.HttpClient(
                host=parsed.hostname or "localhost",
                port=parsed.port or 8000,
                ssl=parsed.scheme == "https",
            )
        return self._client

    def heartbeat(self) -> None:
        self._get_client().heartbeat()

    def get_or_create_collection(self, name: str):
        return self._get_client().get_or_create_collection(
            name=name,
            metadata={"description": "ResumeFit knowledge base", "hnsw:space": "cosine"},
        )


def _matches_where(metadata: Dict[str, Any], where: Optional[Dict[str, Any]]) -> bool:
    """Evaluate the subset of Chroma's where-filter syntax the service uses."""
    if not where:
        return True
    for key, condition in where.items():
        if key == "$and":
            if not all(_matches_where(metadata, sub) for sub in condition):
                return False
        elif key == "$or":
            if not any(_matches_where(metadata, sub) for sub in condition):
                return False
        elif isinstance(condition, dict):
            for op, value in condition.items():
                if op == "$eq" and metadata.get(key) != value:
                    return False
                if op == "$ne" and metadata.get(key) == value:
                    return False
                if op == "$in" and metadata.get(key) not in value:
                    return False
        elif metadata.get(key) != condition:
            return False
    return True


class FaissCollection:
    """In-process collection over a FAISS IndexFlatIP of normalized embeddings."""

    OVERSAMPLE = 5

    def __init__(self, name: str):
        self.name = name
        self._index = None
        self._ids: List[str] = []
        self._documents: List[str] = []
        self._metadatas: List[Dict[str, Any]] = []
        self._known = set()
        self._lock = threading.Lock()

    def count(self) -> int:
        return len(self._ids)

    def add(self, ids, embeddings, documents, metadatas=None) -> None:
        import faiss

        vecs = np.asarray(embeddings, dtype="float32")
        if vecs.ndim == 1:
            vecs = vecs.reshape(1, -1)
        metadatas = metadatas or [{} for _ in ids]

        with self._lock:
            if self._index is None:
                self._index = faiss.IndexFlatIP(vecs.shape[1])
            keep = [i for i, doc_id in enumerate(ids) if doc_id not in self._known]
            if not keep:
                return
            self._index.add(vecs[keep])
            for i in keep:
                self._ids.append(ids[i])
                self._documents.append(documents[i])
                self._metadatas.append(dict(metadatas[i] or {}))
                self._known.add(ids[i])

    def _search(self, vec: np.ndarray, n_results: int, where) -> List[int]:
        total = self._index.ntotal
        k = min(total, n_results * (self.OVERSAMPLE if where else 1))
        while True:
            scores, idxs = self._index.search(vec, k)
            hits = [
                (int(i), float(s))
                for i, s in zip(idxs[0], scores[0])
                if i >= 0 and _matches_where(self._metadatas[int(i)], where)
            ]
            if len(hits) >= n_results or k >= total:
                return hits[:n_results]
            # Not enough rows survived the filter: widen the search
            k = total

    def query(self, query_embeddings, n_results: int = 10, where=None) -> Dict[str, List[List[Any]]]:
        out = {"ids": [], "documents": [], "distances": [], "metadatas": []}
        vecs = np.asarray(query_embeddings, dtype="float32")
        if vecs.ndim == 1:
            vecs = vecs.reshape(1, -1)

        with self._lock:
            for row in vecs:
                if self._index is None or self._index.ntotal == 0:
                    hits = []
                else:
                    hits = self._search(row.reshape(1, -1), n_results, where)
                out["ids"].append([self._ids[i] for i, _ in hits])
                out["documents"].append([self._documents[i] for i, _ in hits])
                out["distances"].append([1.0 - s for _, s in hits])
                out["metadatas"].append([dict(self._metadatas[i]) for i, _ in hits])
        return out


class FaissBackend(CollectionBackend):
    """Collections kept in process memory. Always reachable."""

    name = "faiss"

    def __init__(self):
        self._collections: Dict[str, FaissCollection] = {}
        self._lock = threading.Lock()

    def heartbeat(self) -> None:
        return None

    def get_or_create_collection(self, name: str) -> FaissCollection:
        with self._lock:
            if name not in self._collections:
                self._collections[name] = FaissCollection(name)
            return self._collections[name]


def create_backend(kind: str = config.VECTOR_BACKEND) -> CollectionBackend:
    """Build the backend named by ``RESUMEFIT_VECTOR_BACKEND``."""
    kind = (kind or "").strip().lower()
    if kind == "chroma":
        return ChromaBackend()
    if kind == "faiss":
        return FaissBackend()
    raise ValueError(f"Unknown vector backend: {kind!r} (expected 'chroma' or 'faiss')")
