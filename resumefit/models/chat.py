"""Chat data models."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .analysis import EditSection


class ChatTurn(BaseModel):
    """A single turn in the conversation history sent by the client."""

    role: Literal["user", "assistant"] = "user"
    content: str = ""


class ProposedEdit(BaseModel):
    section: EditSection = "experience"
    before: Optional[str] = None
    after: str = ""
    reason: str = ""
    job_requirement: str = ""


class ChatReply(BaseModel):
    """Assistant reply with incremental edits to the current draft."""

    assistant_message: str
    proposed_edits: List[ProposedEdit] = Field(default_factory=list)
    updated_draft: Optional[str] = None
