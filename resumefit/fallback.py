"""Deterministic answers for when no generative backend is usable.

The analysis compares literal technology keywords and years-of-experience
requirements between the two documents. Retrieved job-to-resume matches, when
there are any, become the first suggestions.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .models import AnalysisResult, ChatReply, ProposedEdit, RetrievalMatch, SuggestedEdit
from .nlp.keywords import find_experience_requirements, find_keywords, significant_words
from .nlp.section_detector import iter_lines

logger = logging.getLogger(__name__)

MAX_MATCH_EDITS = 5
MAX_KEYWORD_EDITS = 3
MIN_USEFUL_EDITS = 3
BASE_SCORE = 50
SCORE_RANGE = 40
MAX_SCORE = 90


def _clip(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def _line_with(lines: List[str], needle: str, span: int = 2) -> Optional[str]:
    """First line mentioning ``needle`` joined with the lines that follow it."""
    lower = needle.lower()
    for i, line in enumerate(lines):
        if lower in line.lower():
            return " ".join(lines[i : i + span])
    return None


def _section_for_requirement(requirement: str) -> str:
    lower = requirement.lower()
    if "experience" in lower or "years" in lower:
        return "experience"
    if "skill" in lower or "proficient" in lower or "expert" in lower:
        return "skills"
    return "summary"


def rule_based_score(found_in_job: Sequence[str], found_in_resume: Sequence[str]) -> int:
    ratio = len(found_in_resume) / max(len(found_in_job), 1)
    return min(round(BASE_SCORE + ratio * SCORE_RANGE), MAX_SCORE)


def _edits_from_matches(matches: Sequence[RetrievalMatch]) -> List[SuggestedEdit]:
    edits: List[SuggestedEdit] = []
    for match in matches:
        if match.direction != "job_to_resume" or not match.matches:
            continue
        requirement = match.query_text
        terms = significant_words(requirement, limit=5, min_length=4)
        edits.append(
            SuggestedEdit(
                section=_section_for_requirement(requirement),
                before=_clip(match.matches[0], 200),
                after=f'Update to explicitly address: "{_clip(requirement, 200)}". Mention: {", ".join(terms[:3])}',
                reason=f'The job description requires: "{_clip(requirement, 250)}"',
                job_requirement=requirement[:300],
                alignment_impact="High - directly addresses a specific requirement from the job description",
                priority="high",
                keywords_addressed=terms,
            )
        )
        if len(edits) >= MAX_MATCH_EDITS:
            break
    return edits


def _keyword_edits(missing: Sequence[str], job_lines: List[str], resume_lines: List[str]) -> List[SuggestedEdit]:
    edits: List[SuggestedEdit] = []
    skills_line = _line_with(resume_lines, "skill")
    for tech in [t for t in missing if len(t) > 3][:MAX_KEYWORD_EDITS]:
        requirement = _line_with(job_lines, tech) or f"Required: {tech}"
        name = " ".join(w[:1].upper() + w[1:] for w in tech.split(" "))
        edits.append(
            SuggestedEdit(
                section="skills",
                before=_clip(skills_line, 150) if skills_line else None,
                after=f'Add {name} to your skills section. The job description requires: "{_clip(requirement, 200)}"',
                reason=f"The job description states: \"{_clip(requirement, 250)}\" - your resume does not mention {name}",
                job_requirement=requirement[:300],
                alignment_impact=f"High - {name} is named in the job description",
                priority="high",
                keywords_addressed=[tech],
            )
        )
    return edits


def _experience_edit(years: str, job_lines: List[str], resume_lines: List[str]) -> SuggestedEdit:
    requirement = _line_with(job_lines, years) or f"Required: {years}"
    before = None
    for needle in ("experience", "work history", "employment"):
        before = _line_with(resume_lines, needle, span=3)
        if before:
            break
    return SuggestedEdit(
        section="experience",
        before=_clip(before, 200) if before else None,
        after=f'State explicitly that you have {years} of relevant experience. The job description requires: "{_clip(requirement, 200)}"',
        reason=f"The job description requires {years} of experience",
        job_requirement=requirement[:300],
        alignment_impact="High - makes the experience requirement explicit",
        priority="high",
        keywords_addressed=[years, "experience"],
    )


def rule_based_analysis(
    resume_text: str,
    job_text: str,
    matches: Optional[Sequence[RetrievalMatch]] = None,
) -> AnalysisResult:
    """Keyword-overlap analysis that needs no model. Score is capped at 90."""
    found_in_job = find_keywords(job_text)
    found_in_resume = find_keywords(resume_text)
    matched = [kw for kw in found_in_job if kw in found_in_resume]
    missing = [kw for kw in found_in_job if kw not in found_in_resume]

    job_lines = iter_lines(job_text)
    resume_lines = iter_lines(resume_text)

    edits = _edits_from_matches(matches or [])
    if len(edits) < MIN_USEFUL_EDITS:
        edits.extend(_keyword_edits(missing, job_lines, resume_lines))

    years = find_experience_requirements(job_text)
    if years and resume_text:
        edits.append(_experience_edit(years[0], job_lines, resume_lines))

    score = rule_based_score(found_in_job, matched)
    logger.info("Rule-based analysis: score=%d, %d edits, %d missing keywords", score, len(edits), len(missing))

    return AnalysisResult(
        score=score,
        matched_keywords=matched,
        missing_keywords=missing,
        suggested_edits=edits,
        updated_draft=resume_text,
        origin="rule_based",
    )


def rule_based_chat_reply(message: str, current_draft: str) -> ChatReply:
    """Structurally valid chat reply picked from the message's intent words."""
    lower = (message or "").lower()
    opening = "I understand you'd like to improve your resume. "
    first_line = next(iter(iter_lines(current_draft)), None)

    if any(w in lower for w in ("summary", "concise", "shorter")):
        return ChatReply(
            assistant_message=opening + "I can help make your summary more concise. Here's a suggestion:",
            proposed_edits=[
                ProposedEdit(
                    section="summary",
                    before=first_line,
                    after="Professional with expertise in key technologies and a proven track record of delivering results.",
                    reason="A concise summary is more impactful and easier to scan.",
                )
            ],
        )
    if "skill" in lower or "add" in lower:
        return ChatReply(
            assistant_message=opening + "I can help you add relevant skills. Consider highlighting:",
            proposed_edits=[
                ProposedEdit(
                    section="skills",
                    after="Add relevant technical skills that match the job description.",
                    reason="Matching skills increase your resume's relevance to the position.",
                )
            ],
        )
    if "experience" in lower or "work" in lower:
        return ChatReply(
            assistant_message=opening + "I can help improve your experience section. Consider:",
            proposed_edits=[
                ProposedEdit(
                    section="experience",
                    after="Quantify achievements with specific metrics and results.",
                    reason="Quantified achievements demonstrate impact and value.",
                )
            ],
        )
    return ChatReply(
        assistant_message=opening
        + "Could you be more specific about what you'd like to change? For example, you could ask to make "
        "the summary more concise, add specific skills, or improve the experience section.",
    )
