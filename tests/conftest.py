"""Shared fakes: deterministic embedder, collection backends and completion backends."""

import asyncio
import hashlib
import re
from typing import List, Optional

import numpy as np
import pytest

from resumefit.exceptions import BackendUnavailableError
from resumefit.llm.client import CompletionBackend, CompletionClient
from resumefit.search.backends import CollectionBackend, FaissBackend
from resumefit.search.store import VectorStore

DIM = 64


class FakeEmbedder:
    """Bag-of-words hashing embedder. Identical texts embed identically."""

    def __init__(self):
        self.calls = 0

    async def embed(self, texts: List[str]) -> np.ndarray:
        self.calls += 1
        out = np.zeros((len(texts), DIM), dtype="float32")
        for row, text in enumerate(texts):
            for token in re.findall(r"[a-z0-9]+", text.lower()):
                bucket = int(hashlib.md5(token.encode("utf-8")).hexdigest(), 16) % DIM
                out[row, bucket] += 1.0
            norm = np.linalg.norm(out[row])
            if norm > 0:
                out[row] /= norm
            else:
                out[row, 0] = 1.0
        return out


class HangingEmbedder:
    """Never finishes; cancellable."""

    async def embed(self, texts: List[str]) -> np.ndarray:
        await asyncio.Event().wait()


class DownBackend(CollectionBackend):
    """Backend that is never reachable, until ``up`` is set."""

    name = "down"

    def __init__(self):
        self.up = False
        self.heartbeats = 0
        self._inner = FaissBackend()

    def heartbeat(self) -> None:
        self.heartbeats += 1
        if not self.up:
            raise ConnectionError("connection refused")

    def get_or_create_collection(self, name: str):
        if not self.up:
            raise ConnectionError("connection refused")
        return self._inner.get_or_create_collection(name)


class BrokenCollection:
    def add(self, *args, **kwargs):
        raise RuntimeError("add failed")

    def query(self, *args, **kwargs):
        raise RuntimeError("query failed")


class BrokenBackend(CollectionBackend):
    """Reachable, but every collection call throws."""

    name = "broken"

    def heartbeat(self) -> None:
        return None

    def get_or_create_collection(self, name: str):
        return BrokenCollection()


class FlakyBackend(CollectionBackend):
    """First collection handed out is broken; later ones work."""

    name = "flaky"

    def __init__(self):
        self.acquired = 0
        self._inner = FaissBackend()

    def heartbeat(self) -> None:
        return None

    def get_or_create_collection(self, name: str):
        self.acquired += 1
        if self.acquired == 1:
            return BrokenCollection()
        return self._inner.get_or_create_collection(name)


class FakeCompletionBackend(CompletionBackend):
    """Replays scripted replies. An exception instance in the script is raised."""

    def __init__(self, replies=None, name: str = "fake", healthy: bool = True):
        super().__init__(analysis_timeout=5.0, chat_timeout=5.0)
        self.name = name
        self.replies = list(replies or [])
        self.prompts: List[str] = []
        self.kinds: List[str] = []
        self.healthy = healthy

    async def complete(self, prompt: str, *, kind: str = "analysis", timeout: Optional[float] = None) -> str:
        self.prompts.append(prompt)
        self.kinds.append(kind)
        if not self.replies:
            raise BackendUnavailableError(f"{self.name}: no scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def check_health(self) -> bool:
        return self.healthy


class GatedCompletionBackend(FakeCompletionBackend):
    """Blocks every call until ``release()``."""

    def __init__(self, reply: str):
        super().__init__([reply], name="gated")
        self.gate: Optional[asyncio.Event] = None
        self.entered = 0

    async def complete(self, prompt: str, *, kind: str = "analysis", timeout: Optional[float] = None) -> str:
        if self.gate is None:
            self.gate = asyncio.Event()
        self.entered += 1
        await self.gate.wait()
        return await super().complete(prompt, kind=kind, timeout=timeout)

    def release(self) -> None:
        self.gate.set()


class HangingCompletionBackend(FakeCompletionBackend):
    async def complete(self, prompt: str, *, kind: str = "analysis", timeout: Optional[float] = None) -> str:
        self.prompts.append(prompt)
        await asyncio.Event().wait()


CANONICAL_REPLY = """{
  "score": 72,
  "matched_keywords": ["Python", "SQL"],
  "missing_keywords": ["Kubernetes"],
  "suggested_edits": [
    {
      "section": "skills",
      "before": "Python, SQL",
      "after": "Python, SQL, Kubernetes",
      "reason": "Job requires Kubernetes",
      "job_requirement": "Experience with Kubernetes",
      "alignment_impact": "Covers a required tool",
      "priority": "high",
      "job_keywords_addressed": ["Kubernetes"]
    }
  ],
  "updated_draft": "Summary\\nBuilt tools.\\nSkills\\nPython, SQL, Kubernetes"
}"""

CHAT_REPLY = """{
  "assistant_message": "Consider naming Kubernetes in your skills.",
  "proposed_edits": [
    {"section": "skills", "before": "Python", "after": "Python, Kubernetes", "reason": "Required tool", "job_requirement": "Kubernetes"}
  ],
  "updated_draft": "Skills\\nPython, Kubernetes"
}"""

RESUME = """Summary
Backend engineer with 6 years of experience building data services.
Experience
Senior Engineer at Acme. Built Python APIs serving 2M requests a day. Led work on SQL query tuning.
Skills
Python, SQL, Docker, REST APIs
Education
BSc Computer Science, State University"""

JOB = """About the team
We build the data platform for our customers.
Responsibilities
Design and operate backend services.
Requirements
5+ years of experience with Python in production.
Must have strong SQL skills and experience with Docker.
Preferred
Kubernetes is a bonus."""


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def faiss_store(embedder):
    return VectorStore(FaissBackend(), embedder, store_timeout=5.0, query_timeout=5.0, heartbeat_timeout=1.0)


@pytest.fixture
def down_store(embedder):
    return VectorStore(DownBackend(), embedder, store_timeout=1.0, query_timeout=1.0, heartbeat_timeout=0.5)


def make_client(*backends) -> CompletionClient:
    hosted = backends[0] if len(backends) > 0 else None
    local = backends[1] if len(backends) > 1 else None
    return CompletionClient(hosted=hosted, local=local)
