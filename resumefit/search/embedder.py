"""Sentence embeddings for chunks and retrieval queries.

One SentenceTransformer is shared by the process. It is loaded on first use,
pinned to CPU, and guarded by a lock because encoding runs in executor threads.
"""

from __future__ import annotations

import asyncio
import threading
from typing import List, Sequence

import numpy as np

from .. import config

_model = None
_model_name = None
_model_lock = threading.Lock()


def get_model(model_name: str = config.EMBEDDING_MODEL):
    """Load (once) and return the shared SentenceTransformer for ``model_name``."""
    global _model, _model_name
    if _model is None or _model_name != model_name:
        with _model_lock:
            if _model is None or _model_name != model_name:
                from sentence_transformers import SentenceTransformer

                _model = SentenceTransformer(model_name, device="cpu")
                _model_name = model_name
    return _model


def embed_texts(texts: Sequence[str], model_name: str = config.EMBEDDING_MODEL) -> np.ndarray:
    """L2-normalized float32 embeddings, one row per text.

    Rows are unit length so inner product equals cosine similarity.
    """
    model = get_model(model_name)
    if not texts:
        return np.zeros((0, model.get_sentence_embedding_dimension()), dtype="float32")
    vecs = model.encode(
        list(texts),
        batch_size=32,
        show_progress_bar=False,
        normalize_embeddings=True,
        convert_to_numpy=True,
    )
    return np.asarray(vecs, dtype="float32")


class Embedder:
    """Async embedding facade. Encoding never blocks the event loop."""

    def __init__(self, model_name: str = config.EMBEDDING_MODEL):
        self.model_name = model_name

    async def embed(self, texts: List[str]) -> np.ndarray:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, embed_texts, list(texts), self.model_name)
