"""Soft-fail vector store adapter.

Storage and retrieval are best-effort: a failing or slow backend degrades the
quality of the assembled context but never fails a request. ``store`` returns
``False`` and ``query`` returns ``[]`` instead of raising.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import uuid
from typing import Any, Dict, List, Optional

from .. import config
from .backends import CollectionBackend
from .embedder import Embedder

logger = logging.getLogger(__name__)


def sanitize_metadata(metadata: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Coerce metadata to the primitive values vector stores accept. None values are dropped."""
    clean: Dict[str, Any] = {}
    for key, value in (metadata or {}).items():
        if value is None:
            continue
        if isinstance(value, (str, int, float, bool)):
            clean[str(key)] = value
        else:
            clean[str(key)] = str(value)
    return clean


class VectorStore:
    """Best-effort access to one vector collection.

    ``available`` reflects the outcome of the last backend interaction. While it
    is False a background poller (see :meth:`start_health_poller`) keeps probing
    the backend so the next request finds it again.
    """

    def __init__(
        self,
        backend: CollectionBackend,
        embedder: Optional[Embedder] = None,
        collection_name: str = config.COLLECTION_NAME,
        *,
        store_timeout: float = config.STORE_CALL_TIMEOUT,
        query_timeout: float = config.QUERY_TIMEOUT,
        heartbeat_timeout: float = config.HEARTBEAT_TIMEOUT,
        poll_interval: float = config.HEALTH_POLL_INTERVAL,
    ):
        self.backend = backend
        self.embedder = embedder or Embedder()
        self.collection_name = collection_name
        self.store_timeout = store_timeout
        self.query_timeout = query_timeout
        self.heartbeat_timeout = heartbeat_timeout
        self.poll_interval = poll_interval

        self.available = False
        self._collection = None
        self._poller: Optional[asyncio.Task] = None

    async def _run(self, fn, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    async def heartbeat(self) -> bool:
        """Probe the backend and update ``available``."""
        was_available = self.available
        try:
            await asyncio.wait_for(self._run(self.backend.heartbeat), self.heartbeat_timeout)
        except asyncio.TimeoutError:
            self.available = False
            if was_available:
                logger.warning("Vector store heartbeat timed out after %.1fs", self.heartbeat_timeout)
            return False
        except Exception as exc:
            self.available = False
            if was_available:
                logger.warning("Vector store connection lost: %s", exc)
            return False

        self.available = True
        if not was_available:
            logger.info("Vector store reachable (%s)", self.backend.name)
        return True

    async def _get_collection(self):
        if not self.available and not await self.heartbeat():
            return None
        if self._collection is None:
            self._collection = await self._run(self.backend.get_or_create_collection, self.collection_name)
        return self._collection

    async def reconnect(self) -> bool:
        """Drop the cached collection, probe the backend and reacquire it."""
        self._collection = None
        self.available = False
        if not await self.heartbeat():
            return False
        try:
            await self._get_collection()
        except Exception as exc:
            logger.warning("Vector store reconnected but collection unavailable: %s", exc)
            self.available = False
            return False
        return True

    async def _with_reconnect(self, op):
        """Run ``op(collection)``; on failure reconnect once and retry."""
        try:
            collection = await self._get_collection()
            if collection is None:
                return None
            return await op(collection)
        except Exception as exc:
            logger.warning("Vector store operation failed, reconnecting: %s", exc)
            if not await self.reconnect():
                raise
            return await op(self._collection)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def store(
        self,
        text: str,
        metadata: Optional[Dict[str, Any]] = None,
        doc_id: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
    ) -> bool:
        """Embed and persist one document. Returns False instead of raising."""
        if not text or not text.strip():
            return False
        doc_id = doc_id or f"doc_{uuid.uuid4().hex}"
        meta = sanitize_metadata(metadata)

        async def _add(collection):
            vecs = await self.embedder.embed([text])
            await self._run(collection.add, ids=[doc_id], embeddings=vecs.tolist(), documents=[text], metadatas=[meta] if meta else None)
            return True

        budget = self.store_timeout if timeout is None else timeout
        try:
            stored = await asyncio.wait_for(self._with_reconnect(_add), budget)
        except asyncio.TimeoutError:
            logger.warning("Vector store write timed out after %.1fs (doc %s)", budget, doc_id)
            return False
        except Exception as exc:
            logger.warning("Error storing in vector store: %s", exc)
            self.available = False
            return False
        return bool(stored)

    async def query(
        self,
        text: str,
        top_k: int = 10,
        *,
        timeout: Optional[float] = None,
        where: Optional[Dict[str, Any]] = None,
    ) -> List[str]:
        """Return up to ``top_k`` stored documents, most similar first. Never raises."""
        if not text or not text.strip():
            return []

        async def _query(collection):
            vecs = await self.embedder.embed([text])
            result = await self._run(
                collection.query,
                query_embeddings=vecs.tolist(),
                n_results=max(1, int(top_k)),
                where=where or None,
            )
            documents = (result or {}).get("documents") or [[]]
            return [doc for doc in (documents[0] or []) if doc]

        budget = self.query_timeout if timeout is None else timeout
        try:
            docs = await asyncio.wait_for(self._with_reconnect(_query), budget)
        except asyncio.TimeoutError:
            logger.warning("Retrieval timed out after %.1fs for query %r", budget, text[:50])
            return []
        except Exception as exc:
            logger.warning("Error retrieving from vector store: %s", exc)
            self.available = False
            return []
        return docs or []

    # ------------------------------------------------------------------
    # Background health polling
    # ------------------------------------------------------------------

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            if not self.available:
                await self.heartbeat()

    def start_health_poller(self) -> None:
        """Start probing the backend every ``poll_interval`` seconds while unavailable."""
        if self._poller is None or self._poller.done():
            self._poller = asyncio.get_running_loop().create_task(self._poll())

    async def stop_health_poller(self) -> None:
        if self._poller is None:
            return
        self._poller.cancel()
        try:
            await self._poller
        except asyncio.CancelledError:
            pass
        self._poller = None
