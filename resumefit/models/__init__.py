"""Pydantic data models for ResumeFit."""

from .analysis import AlignmentGap, AnalysisResult, SkillsSection, SuggestedEdit
from .chat import ChatReply, ChatTurn, ProposedEdit
from .chunk import AnalysisSession, Chunk, RetrievalMatch

__all__ = [
    "AlignmentGap",
    "AnalysisResult",
    "AnalysisSession",
    "ChatReply",
    "ChatTurn",
    "Chunk",
    "ProposedEdit",
    "RetrievalMatch",
    "SkillsSection",
    "SuggestedEdit",
]
