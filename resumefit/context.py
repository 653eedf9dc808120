"""Context assembly: section-prioritized job text plus cross-document retrieval.

The assembler indexes both documents for the current session, then looks up,
for each anchor line of one document, the closest passages of the other. Every
vector-store call is bounded and soft-fails, so the worst case is an empty
retrieval context next to the full prioritized job text.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from . import config
from .exceptions import InputValidationError
from .models import AnalysisSession, Chunk, RetrievalMatch
from .nlp.chunker import chunk_job_description, chunk_resume
from .nlp.section_detector import (
    build_prioritized_job_text,
    extract_job_sections,
    iter_lines,
    key_requirements_summary,
    label_lines,
)
from .search.store import VectorStore

logger = logging.getLogger(__name__)

RESUME_ANCHOR_KEYWORDS = ("experience", "skill", "summary", "education", "project", "work")
JOB_ANCHOR_KEYWORDS = (
    "required", "must have", "qualifications", "skills", "experience",
    "years", "degree", "certification", "proficient", "expert", "minimum",
)
MAX_RESUME_ANCHORS = 30
MAX_JOB_ANCHORS = 50
MIN_ANCHOR_CHARS = 20
RETRIEVAL_TOP_K = 10

BLOCK_SEPARATOR = "\n\n---\n\n"


@dataclass
class AssembledContext:
    """Everything the prompt builder needs for one analysis."""

    prioritized_job_text: str
    rag_context: str
    key_requirements: str
    session: AnalysisSession
    matches: List[RetrievalMatch] = field(default_factory=list)


def select_anchors(text: str, keywords: Sequence[str], limit: int) -> List[str]:
    """Lines longer than ``MIN_ANCHOR_CHARS`` that mention any keyword, in order, capped."""
    anchors = []
    for line in iter_lines(text):
        if len(line) <= MIN_ANCHOR_CHARS:
            continue
        lower = line.lower()
        if any(kw in lower for kw in keywords):
            anchors.append(line)
            if len(anchors) >= limit:
                break
    return anchors


def render_matches(matches: Sequence[RetrievalMatch]) -> str:
    """Resume-anchored blocks first, then job-anchored blocks, each in anchor order."""
    blocks = []
    for match in matches:
        if match.direction == "resume_to_job":
            blocks.append(
                f'Resume section: "{match.query_text}"\nMatching requirements:\n'
                + BLOCK_SEPARATOR.join(match.matches)
            )
    for match in matches:
        if match.direction == "job_to_resume":
            blocks.append(
                f'Requirement: "{match.query_text}"\nMatching resume text:\n'
                + BLOCK_SEPARATOR.join(match.matches)
            )
    return BLOCK_SEPARATOR.join(blocks)


class ContextAssembler:
    """Builds the prompt context for an analyze request."""

    def __init__(
        self,
        store: VectorStore,
        *,
        storage_timeout: float = config.STORAGE_PHASE_TIMEOUT,
        query_timeout: float = config.QUERY_TIMEOUT,
        top_k: int = RETRIEVAL_TOP_K,
    ):
        self.store = store
        self.storage_timeout = storage_timeout
        self.query_timeout = query_timeout
        self.top_k = top_k

    async def assemble(self, resume_text: str, job_text: str, *, session_id: Optional[str] = None) -> AssembledContext:
        if not resume_text or not resume_text.strip():
            raise InputValidationError("Resume text is required")
        if not job_text or not job_text.strip():
            raise InputValidationError("Job description text is required")

        buckets = extract_job_sections(job_text)
        prioritized = build_prioritized_job_text(buckets)
        key_requirements = key_requirements_summary(buckets)

        session = AnalysisSession(
            session_id=session_id or uuid.uuid4().hex,
            resume_text=resume_text,
            job_text=job_text,
        )
        session.chunks = (
            chunk_resume(resume_text, doc_key=session.resume_doc_id)
            + chunk_job_description(job_text, doc_key=session.job_doc_id)
        )

        # Retrieval only makes sense once this session's chunks are in the store
        await self._store_chunks(session)
        matches = await self._retrieve(session)

        return AssembledContext(
            prioritized_job_text=prioritized,
            rag_context=render_matches(matches),
            key_requirements=key_requirements,
            session=session,
            matches=matches,
        )

    async def _store_chunks(self, session: AnalysisSession) -> int:
        timestamp = datetime.now(timezone.utc).isoformat()

        def _metadata(chunk: Chunk) -> dict:
            doc_id = session.resume_doc_id if chunk.source_type == "resume" else session.job_doc_id
            return {
                "source_type": chunk.source_type,
                "section": chunk.section,
                "index": chunk.sequence_index,
                "session_id": session.session_id,
                "doc_id": doc_id,
                "timestamp": timestamp,
            }

        started = time.monotonic()
        writes = [
            self.store.store(chunk.text, _metadata(chunk), doc_id=chunk.chunk_id)
            for chunk in session.chunks
        ]
        try:
            results = await asyncio.wait_for(asyncio.gather(*writes), self.storage_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Chunk storage exceeded %.1fs, continuing with partial index (session %s)",
                self.storage_timeout,
                session.session_id,
            )
            return 0

        stored = sum(1 for ok in results if ok)
        if stored < len(results):
            logger.warning("Stored %d/%d chunks for session %s", stored, len(results), session.session_id)
        else:
            logger.info("Stored %d chunks in %.2fs", stored, time.monotonic() - started)
        return stored

    async def _lookup(self, anchor: str, section: str, direction: str, target: str, session_id: str) -> Optional[RetrievalMatch]:
        where = {"$and": [{"session_id": session_id}, {"source_type": target}]}
        try:
            docs = await asyncio.wait_for(
                self.store.query(anchor, self.top_k, timeout=self.query_timeout, where=where),
                self.query_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Retrieval timeout for anchor: %s...", anchor[:50])
            return None
        if not docs:
            return None
        return RetrievalMatch(query_text=anchor, matches=docs, origin_section=section, direction=direction)

    async def _retrieve(self, session: AnalysisSession) -> List[RetrievalMatch]:
        resume_sections = dict(label_lines(session.resume_text, "resume"))
        job_sections = dict(label_lines(session.job_text, "job"))

        resume_anchors = select_anchors(session.resume_text, RESUME_ANCHOR_KEYWORDS, MAX_RESUME_ANCHORS)
        job_anchors = select_anchors(session.job_text, JOB_ANCHOR_KEYWORDS, MAX_JOB_ANCHORS)

        started = time.monotonic()
        lookups = [
            self._lookup(a, resume_sections.get(a, "other"), "resume_to_job", "job", session.session_id)
            for a in resume_anchors
        ] + [
            self._lookup(a, job_sections.get(a, "other"), "job_to_resume", "resume", session.session_id)
            for a in job_anchors
        ]
        results = await asyncio.gather(*lookups)
        matches = [m for m in results if m is not None]

        logger.info(
            "Retrieval finished in %.2fs: %d matches from %d resume and %d job anchors",
            time.monotonic() - started,
            len(matches),
            len(resume_anchors),
            len(job_anchors),
        )
        return matches
