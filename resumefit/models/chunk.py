"""Chunk and retrieval data models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

SourceType = Literal["resume", "job"]


class Chunk(BaseModel):
    """A section-labeled span of resume or job text prepared for indexing."""

    model_config = ConfigDict(frozen=True)

    text: str
    source_type: SourceType
    section: str = "other"
    sequence_index: int = 0
    chunk_id: str = ""

    @field_validator("text")
    @classmethod
    def _text_not_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("chunk text must not be empty")
        return value


class RetrievalMatch(BaseModel):
    """Passages from one document retrieved for an anchor line of the other."""

    query_text: str
    matches: List[str] = Field(default_factory=list)
    origin_section: str = "other"
    direction: Literal["job_to_resume", "resume_to_job"] = "job_to_resume"


class AnalysisSession(BaseModel):
    """State of a single analyze request."""

    session_id: str
    resume_text: str
    job_text: str
    chunks: List[Chunk] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def resume_doc_id(self) -> str:
        return f"{self.session_id}_resume"

    @property
    def job_doc_id(self) -> str:
        return f"{self.session_id}_job"
