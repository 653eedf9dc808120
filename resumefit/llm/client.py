"""Generative backends and the client that falls back between them.

The hosted backend (OpenAI) is tried first when configured, then the local
Ollama server. Each backend owns its timeouts and health state; the client
only decides ordering and combines failures.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import httpx
import openai

from .. import config
from ..exceptions import BackendTimeoutError, BackendUnavailableError, ProviderError

logger = logging.getLogger(__name__)

TEMPERATURE = 0.3
OPENAI_MAX_TOKENS = 16000
OLLAMA_NUM_PREDICT = 4000
HEALTH_CHECK_TIMEOUT = 5.0


class CompletionBackend(ABC):
    """One generative backend. ``complete`` returns raw model text."""

    name = "base"

    def __init__(self, analysis_timeout: float, chat_timeout: float):
        self.analysis_timeout = analysis_timeout
        self.chat_timeout = chat_timeout

    def timeout_for(self, kind: str) -> float:
        return self.chat_timeout if kind == "chat" else self.analysis_timeout

    @abstractmethod
    async def complete(self, prompt: str, *, kind: str = "analysis", timeout: Optional[float] = None) -> str:
        """Raise BackendTimeoutError or BackendUnavailableError on failure."""

    async def check_health(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None


class OpenAIBackend(CompletionBackend):
    """Hosted chat completions with JSON response format."""

    name = "openai"

    def __init__(
        self,
        api_key: str = config.OPENAI_API_KEY,
        model: str = config.OPENAI_MODEL,
        *,
        client=None,
        analysis_timeout: float = config.OPENAI_ANALYSIS_TIMEOUT,
        chat_timeout: float = config.OPENAI_CHAT_TIMEOUT,
    ):
        super().__init__(analysis_timeout, chat_timeout)
        self.api_key = api_key
        self.model = model
        self._client = client

    def _get_client(self):
        if self._client is None:
            # Retries are handled by falling back to the next backend
            self._client = openai.AsyncOpenAI(api_key=self.api_key, max_retries=0)
        return self._client

    async def complete(self, prompt: str, *, kind: str = "analysis", timeout: Optional[float] = None) -> str:
        budget = timeout or self.timeout_for(kind)
        started = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._get_client().chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=TEMPERATURE,
                    max_tokens=OPENAI_MAX_TOKENS,
                    response_format={"type": "json_object"},
                ),
                budget,
            )
        except (asyncio.TimeoutError, openai.APITimeoutError) as exc:
            raise BackendTimeoutError(f"OpenAI request timed out after {budget:.0f}s") from exc
        except openai.APIError as exc:
            raise BackendUnavailableError(f"OpenAI API error: {exc}") from exc

        content = response.choices[0].message.content if response.choices else ""
        if not content or not content.strip():
            raise BackendUnavailableError("Empty response from OpenAI")

        logger.info("OpenAI %s reply: %d chars in %.1fs", kind, len(content), time.monotonic() - started)
        return content

    async def check_health(self) -> bool:
        return bool(self.api_key)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()


class OllamaBackend(CompletionBackend):
    """Local Ollama server with retries and exponential backoff."""

    name = "ollama"

    def __init__(
        self,
        url: str = config.OLLAMA_URL,
        model: str = config.OLLAMA_MODEL,
        *,
        client: Optional[httpx.AsyncClient] = None,
        max_retries: int = config.OLLAMA_MAX_RETRIES,
        retry_delay: float = config.OLLAMA_RETRY_DELAY,
        analysis_timeout: float = config.OLLAMA_ANALYSIS_TIMEOUT,
        chat_timeout: float = config.OLLAMA_CHAT_TIMEOUT,
    ):
        super().__init__(analysis_timeout, chat_timeout)
        self.url = url.rstrip("/")
        self.model = model
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.healthy = False
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def check_health(self) -> bool:
        """Probe ``/api/tags`` and update ``healthy``."""
        try:
            response = await self._get_client().get(f"{self.url}/api/tags", timeout=HEALTH_CHECK_TIMEOUT)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            if self.healthy:
                logger.warning("Ollama health check failed: %s", exc)
            self.healthy = False
            return False

        if not isinstance(data, dict):
            data = {}
        names = [m.get("name", "") for m in data.get("models") or [] if isinstance(m, dict)]
        if not any(n == self.model or n.startswith(self.model + ":") for n in names):
            # Still usable: Ollama pulls or errors per request
            logger.warning("Ollama is running but model %r not found. Available: %s", self.model, ", ".join(names) or "none")
        self.healthy = True
        return True

    async def _chat_once(self, prompt: str, budget: float) -> str:
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": False,
            "options": {"num_predict": OLLAMA_NUM_PREDICT, "temperature": TEMPERATURE},
        }
        try:
            response = await asyncio.wait_for(
                self._get_client().post(f"{self.url}/api/chat", json=payload, timeout=budget),
                budget,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise BackendTimeoutError(f"Ollama request timed out after {budget:.0f}s") from exc
        except httpx.HTTPError as exc:
            raise BackendUnavailableError(f"Ollama request failed: {exc}") from exc

        if response.status_code != 200:
            raise BackendUnavailableError(f"Ollama returned {response.status_code}: {response.text[:200]}")
        try:
            data = response.json()
        except ValueError as exc:
            raise BackendUnavailableError("Ollama returned a non-JSON body") from exc

        if not isinstance(data, dict):
            raise BackendUnavailableError("Ollama returned an unexpected body")
        content = (data.get("message") or {}).get("content") or data.get("response") or ""
        if not content.strip():
            raise BackendUnavailableError("Empty response from Ollama")
        return content

    async def complete(self, prompt: str, *, kind: str = "analysis", timeout: Optional[float] = None) -> str:
        budget = timeout or self.timeout_for(kind)
        logger.info("Calling Ollama (prompt: %d chars, timeout: %.0fs)", len(prompt), budget)

        last_error: Optional[ProviderError] = None
        for attempt in range(1, self.max_retries + 1):
            if attempt > 1 and not self.healthy:
                await self.check_health()
            started = time.monotonic()
            try:
                content = await self._chat_once(prompt, budget)
            except ProviderError as exc:
                last_error = exc
                if attempt == self.max_retries:
                    break
                delay = self.retry_delay * (2 ** (attempt - 1))
                logger.warning(
                    "Ollama attempt %d/%d failed after %.1fs: %s. Retrying in %.1fs",
                    attempt, self.max_retries, time.monotonic() - started, exc, delay,
                )
                await asyncio.sleep(delay)
                continue

            self.healthy = True
            logger.info("Ollama %s reply: %d chars in %.1fs", kind, len(content), time.monotonic() - started)
            return content

        self.healthy = False
        message = f"Ollama failed after {self.max_retries} attempts: {last_error}"
        if isinstance(last_error, BackendTimeoutError):
            raise BackendTimeoutError(message) from last_error
        raise BackendUnavailableError(message) from last_error

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


class CompletionClient:
    """Tries the hosted backend first, then the local one, and combines failures."""

    def __init__(self, hosted: Optional[CompletionBackend] = None, local: Optional[CompletionBackend] = None):
        self.backends: List[CompletionBackend] = [b for b in (hosted, local) if b is not None]

    @property
    def configured(self) -> bool:
        return bool(self.backends)

    async def complete(self, prompt: str, kind: str = "analysis", timeout: Optional[float] = None) -> str:
        if not self.backends:
            raise BackendUnavailableError("No generative backend configured (set OPENAI_API_KEY or USE_OLLAMA)")

        errors: List[ProviderError] = []
        for backend in self.backends:
            try:
                return await backend.complete(prompt, kind=kind, timeout=timeout)
            except ProviderError as exc:
                logger.warning("%s backend failed: %s", backend.name, exc)
                errors.append(exc)

        combined = "; ".join(f"{b.name}: {e.message}" for b, e in zip(self.backends, errors))
        if all(isinstance(e, BackendTimeoutError) for e in errors):
            raise BackendTimeoutError(f"All generative backends timed out ({combined})")
        raise BackendUnavailableError(f"All generative backends failed ({combined})")

    async def health(self) -> Dict[str, bool]:
        results = await asyncio.gather(*(b.check_health() for b in self.backends))
        return {b.name: ok for b, ok in zip(self.backends, results)}

    async def aclose(self) -> None:
        for backend in self.backends:
            await backend.aclose()


def build_completion_client() -> CompletionClient:
    """Select backends from config: OpenAI when a key is set, Ollama unless disabled."""
    hosted = OpenAIBackend() if config.has_openai() else None
    local = OllamaBackend() if config.use_ollama() else None
    return CompletionClient(hosted=hosted, local=local)
