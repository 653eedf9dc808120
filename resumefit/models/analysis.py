"""Analysis result data models."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

EditSection = Literal["summary", "experience", "skills"]
Priority = Literal["high", "medium", "low"]


class SuggestedEdit(BaseModel):
    """A single proposed change to the resume, tied to a job requirement."""

    model_config = ConfigDict(frozen=True)

    section: EditSection = "experience"
    before: Optional[str] = None
    after: str = ""
    reason: str = ""
    job_requirement: str = ""
    alignment_impact: str = ""
    priority: Priority = "medium"
    keywords_addressed: List[str] = Field(default_factory=list)


class AlignmentGap(BaseModel):
    """A job requirement that the resume misses or states weakly."""

    job_requirement: str = ""
    evidence_from_job: str = ""
    evidence_from_resume: str = "NOT FOUND IN RESUME"
    gap_type: Literal["missing", "weak", "vague"] = "missing"
    priority: Priority = "medium"


class SkillsSection(BaseModel):
    current: str = ""
    suggested: str = ""
    added_keywords: List[str] = Field(default_factory=list)


class AnalysisResult(BaseModel):
    """Canonical output of one analysis, whatever shape the model replied in."""

    score: int = Field(ge=0, le=100)
    matched_keywords: List[str] = Field(default_factory=list)
    missing_keywords: List[str] = Field(default_factory=list)
    suggested_edits: List[SuggestedEdit] = Field(default_factory=list)
    updated_draft: str = ""

    # Carried through from the alternative reply shape
    alignment_gaps: List[AlignmentGap] = Field(default_factory=list)
    skills_section: Optional[SkillsSection] = None
    ignored_noise: List[str] = Field(default_factory=list)

    origin: Literal["canonical", "resume_edits", "gaps", "rule_based"] = "canonical"
