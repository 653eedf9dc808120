"""Section-aware chunking for resumes and job descriptions.

Each section block is split into sentences and greedily packed into chunks of a
soft character budget. A new chunk carries the trailing words of the previous one
so retrieval does not lose context at the boundary.
"""

from __future__ import annotations

import hashlib
import math
import re
from typing import List, Optional

from ..models.chunk import Chunk, SourceType
from .section_detector import detect_sections

SENT_SPLIT_REGEX = re.compile(r"(?<=[.!?])\s+")

RESUME_CHUNK_CHARS = 400
JOB_CHUNK_CHARS = 500
OVERLAP_RATIO = 0.1
MIN_FRAGMENT_CHARS = 20


def _stable_chunk_id(doc_key: str, order: int) -> str:
    return hashlib.md5(f"{doc_key}|{order}".encode("utf-8")).hexdigest()


def split_sentences(text: str, min_fragment: int = MIN_FRAGMENT_CHARS) -> List[str]:
    """Split on sentence boundaries, merging trivial fragments into a neighbor."""
    pieces = [p.strip() for p in SENT_SPLIT_REGEX.split(text or "") if p.strip()]

    sentences: List[str] = []
    pending = ""
    for piece in pieces:
        if pending:
            piece = f"{pending} {piece}"
            pending = ""
        if len(piece) < min_fragment:
            if sentences:
                sentences[-1] = f"{sentences[-1]} {piece}"
            else:
                pending = piece
            continue
        sentences.append(piece)

    if pending:
        sentences.append(pending)
    return sentences


def _tail_words(text: str, ratio: float) -> str:
    words = text.split()
    if not words or ratio <= 0:
        return ""
    n = max(1, math.floor(len(words) * ratio))
    return " ".join(words[-n:])


def chunk_text(
    text: str,
    budget: int = JOB_CHUNK_CHARS,
    *,
    overlap_ratio: float = OVERLAP_RATIO,
    min_fragment: int = MIN_FRAGMENT_CHARS,
) -> List[str]:
    """Pack sentences into chunks of roughly ``budget`` characters.

    A single sentence longer than the budget becomes its own oversized chunk.
    Content is never dropped: if nothing can be split, the whole text is returned.
    """
    text = (text or "").strip()
    if not text:
        return []

    chunks: List[str] = []
    current = ""
    for sentence in split_sentences(text, min_fragment=min_fragment):
        if current and len(current) + 1 + len(sentence) > budget:
            chunks.append(current)
            overlap = _tail_words(current, overlap_ratio)
            current = f"{overlap} {sentence}" if overlap else sentence
        else:
            current = f"{current} {sentence}" if current else sentence

    if current:
        chunks.append(current)

    return chunks or [text]


def _chunk_document(text: str, source_type: SourceType, budget: int, doc_key: Optional[str]) -> List[Chunk]:
    key = doc_key or source_type
    chunks: List[Chunk] = []
    for section in detect_sections(text, source_type):
        # Lines of a section are joined into running text before sentence splitting
        block = " ".join(section.lines)
        for piece in chunk_text(block, budget):
            order = len(chunks)
            chunks.append(
                Chunk(
                    text=piece,
                    source_type=source_type,
                    section=section.name,
                    sequence_index=order,
                    chunk_id=_stable_chunk_id(key, order),
                )
            )
    return chunks


def chunk_resume(text: str, *, doc_key: Optional[str] = None, budget: int = RESUME_CHUNK_CHARS) -> List[Chunk]:
    """Chunk a resume into summary/experience/skills/education/projects/other chunks."""
    return _chunk_document(text, "resume", budget, doc_key)


def chunk_job_description(text: str, *, doc_key: Optional[str] = None, budget: int = JOB_CHUNK_CHARS) -> List[Chunk]:
    """Chunk a job description into requirement-oriented section chunks."""
    return _chunk_document(text, "job", budget, doc_key)
