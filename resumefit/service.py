"""ResumeFit service: analysis, chat and storage on top of the retrieval and LLM layers.

Only one analysis runs at a time; the in-flight guard rejects concurrent
requests and a watchdog clears a flag left behind by a request that outlived
the analysis deadline.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Any, Callable, Dict, List, Optional, Sequence

from . import config
from .context import ContextAssembler
from .exceptions import ConcurrencyRejectedError, InputValidationError, MalformedResponseError, ProviderError
from .fallback import rule_based_analysis, rule_based_chat_reply
from .llm.client import CompletionClient, build_completion_client
from .llm.normalizer import normalize, normalize_chat
from .llm.prompts import build_analysis_prompt, build_chat_prompt, build_strict_retry_prompt
from .models import AnalysisResult, ChatReply, ChatTurn, RetrievalMatch
from .nlp.cleaner import clean_input_text
from .nlp.section_detector import build_prioritized_job_text, extract_job_sections
from .search.backends import create_backend
from .search.embedder import Embedder
from .search.store import VectorStore

logger = logging.getLogger(__name__)

CHAT_CONTEXT_TOP_K = 5


class InFlightGuard:
    """Single-slot marker for the analysis that is currently running."""

    def __init__(self, stale_after: float = config.ANALYSIS_DEADLINE, clock: Callable[[], float] = time.monotonic):
        self.stale_after = stale_after
        self._clock = clock
        self.request_id: Optional[str] = None
        self.started_at: Optional[float] = None

    @property
    def in_progress(self) -> bool:
        return self.request_id is not None

    def duration(self) -> Optional[int]:
        if self.started_at is None:
            return None
        return int(round(self._clock() - self.started_at))

    def clear_if_stale(self) -> Optional[str]:
        """Clear a flag older than ``stale_after``. Returns the cleared request id."""
        if self.in_progress and self._clock() - self.started_at > self.stale_after:
            previous = self.request_id
            logger.warning("Auto-clearing stuck analysis [%s] (running for %ss)", previous, self.duration())
            self.reset()
            return previous
        return None

    def acquire(self, request_id: Optional[str] = None) -> str:
        self.clear_if_stale()
        request_id = request_id or uuid.uuid4().hex[:12]
        if self.in_progress:
            duration = self.duration()
            logger.warning(
                "Analysis already in progress [%s] (running for %ss), rejecting [%s]",
                self.request_id, duration, request_id,
            )
            raise ConcurrencyRejectedError(
                f"Analysis already in progress. Please wait for the current analysis to complete. "
                f"(Running for {duration} seconds)",
                request_id=self.request_id,
                duration_seconds=duration,
            )
        self.request_id = request_id
        self.started_at = self._clock()
        return request_id

    def release(self, request_id: str) -> None:
        # A reset or stale-clear may already have handed the slot to someone else
        if self.request_id == request_id:
            self.reset()

    def reset(self) -> Optional[str]:
        previous = self.request_id
        self.request_id = None
        self.started_at = None
        return previous

    def status(self) -> Dict[str, Any]:
        return {
            "in_progress": self.in_progress,
            "request_id": self.request_id,
            "duration_seconds": self.duration(),
        }


class ResumeFitService:
    """Entry point used by the API and the CLI."""

    def __init__(
        self,
        store: VectorStore,
        completion: CompletionClient,
        *,
        assembler: Optional[ContextAssembler] = None,
        deadline: float = config.ANALYSIS_DEADLINE,
        watchdog_interval: float = config.WATCHDOG_INTERVAL,
        chat_retrieval_timeout: float = config.CHAT_RETRIEVAL_TIMEOUT,
        guard: Optional[InFlightGuard] = None,
    ):
        self.store = store
        self.completion = completion
        self.assembler = assembler or ContextAssembler(store)
        self.deadline = deadline
        self.watchdog_interval = watchdog_interval
        self.chat_retrieval_timeout = chat_retrieval_timeout
        self.guard = guard or InFlightGuard(stale_after=deadline)
        self._watchdog: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def startup(self) -> None:
        if await self.store.heartbeat():
            logger.info("Vector store connected (%s)", self.store.backend.name)
        else:
            logger.warning("Vector store not available, analyses will run without retrieval context")
        self.store.start_health_poller()

        backends = await self.completion.health()
        if not backends:
            logger.warning("No generative backend configured, using rule-based analysis only")
        for name, ok in backends.items():
            logger.info("Generative backend %s: %s", name, "ready" if ok else "not responding")

        self._watchdog = asyncio.get_running_loop().create_task(self._watch())

    async def shutdown(self) -> None:
        if self._watchdog is not None:
            self._watchdog.cancel()
            try:
                await self._watchdog
            except asyncio.CancelledError:
                pass
            self._watchdog = None
        await self.store.stop_health_poller()
        await self.completion.aclose()

    async def _watch(self) -> None:
        while True:
            await asyncio.sleep(self.watchdog_interval)
            self.guard.clear_if_stale()

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def analyze(self, resume_text: str, job_text: str) -> AnalysisResult:
        """Analyze a resume against a job description.

        Raises:
            InputValidationError: either text is missing.
            ConcurrencyRejectedError: another analysis is running.
        """
        resume = clean_input_text(resume_text)
        job = clean_input_text(job_text)
        if not resume or not job:
            raise InputValidationError("Both resumeText and jobText are required")

        request_id = self.guard.acquire()
        started = time.monotonic()
        logger.info("Analysis [%s] started: resume %d chars, job %d chars", request_id, len(resume), len(job))

        # Matches found before a deadline expiry still feed the fallback
        progress: Dict[str, List[RetrievalMatch]] = {"matches": []}
        try:
            try:
                result = await asyncio.wait_for(self._analyze(resume, job, request_id, progress), self.deadline)
            except asyncio.TimeoutError:
                logger.error(
                    "Analysis [%s] exceeded %.0fs deadline, returning rule-based result", request_id, self.deadline
                )
                result = rule_based_analysis(resume, job, progress["matches"])
        finally:
            self.guard.release(request_id)

        logger.info(
            "Analysis [%s] finished in %.1fs (origin=%s, score=%d, %d edits)",
            request_id, time.monotonic() - started, result.origin, result.score, len(result.suggested_edits),
        )
        return result

    async def _analyze(self, resume: str, job: str, request_id: str, progress: Dict[str, List[RetrievalMatch]]) -> AnalysisResult:
        context = await self.assembler.assemble(resume, job, session_id=request_id)
        progress["matches"] = context.matches

        prompt = build_analysis_prompt(
            resume,
            context.prioritized_job_text,
            key_requirements=context.key_requirements,
            rag_context=context.rag_context,
        )
        logger.debug("Analysis prompt: %d chars (retrieval context %d chars)", len(prompt), len(context.rag_context))

        try:
            raw = await self.completion.complete(prompt, kind="analysis")
            try:
                return normalize(raw, resume)
            except MalformedResponseError as exc:
                logger.warning("Malformed analysis reply (%s), retrying with strict prompt", exc)
            raw = await self.completion.complete(build_strict_retry_prompt(prompt), kind="analysis")
            return normalize(raw, resume)
        except (ProviderError, MalformedResponseError) as exc:
            logger.warning("Generative analysis failed, using rule-based result: %s", exc)
            return rule_based_analysis(resume, job, context.matches)

    def analysis_status(self) -> Dict[str, Any]:
        self.guard.clear_if_stale()
        return self.guard.status()

    def reset_analysis(self) -> Optional[str]:
        previous = self.guard.reset()
        logger.warning("Analysis state reset. Previous request: %s", previous or "none")
        return previous

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def chat(
        self,
        message: str,
        current_draft: str,
        job_text: str,
        history: Optional[Sequence[ChatTurn]] = None,
    ) -> ChatReply:
        """Answer a chat turn with incremental edits. Falls back to a canned reply, never raises on backend failure."""
        if not (message or "").strip() or not (current_draft or "").strip() or not (job_text or "").strip():
            raise InputValidationError("message, currentDraft, and jobText are required")

        job = clean_input_text(job_text)
        try:
            passages = await asyncio.wait_for(
                self.store.query(f"{message} {job}", CHAT_CONTEXT_TOP_K, timeout=self.chat_retrieval_timeout),
                self.chat_retrieval_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Chat retrieval timed out, continuing without context")
            passages = []

        prioritized = build_prioritized_job_text(extract_job_sections(job)) or job
        prompt = build_chat_prompt(message, current_draft, prioritized, history or [], passages)

        for attempt in (1, 2):
            try:
                raw = await self.completion.complete(prompt, kind="chat")
                return normalize_chat(raw, current_draft)
            except (ProviderError, MalformedResponseError) as exc:
                logger.warning("Chat attempt %d failed: %s", attempt, exc)

        logger.warning("Chat generation failed after retry, using fallback reply")
        return rule_based_chat_reply(message, current_draft)

    # ------------------------------------------------------------------
    # Storage / health
    # ------------------------------------------------------------------

    async def store_text(self, text: str, metadata: Optional[Dict[str, Any]] = None) -> bool:
        if not (text or "").strip():
            raise InputValidationError("text is required")
        return await self.store.store(text, metadata or {})

    async def health(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "vector_store": {"backend": self.store.backend.name, "available": self.store.available},
            "backends": await self.completion.health(),
        }


def build_service() -> ResumeFitService:
    """Wire the service from ``config``."""
    store = VectorStore(create_backend(config.VECTOR_BACKEND), Embedder(config.EMBEDDING_MODEL))
    return ResumeFitService(store, build_completion_client())
