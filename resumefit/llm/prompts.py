"""Prompt builders for analysis, strict retries and chat."""

from __future__ import annotations

from typing import List, Optional, Sequence

from ..models import ChatTurn

MAX_CHAT_DRAFT_CHARS = 3000
MAX_CHAT_HISTORY_TURNS = 10
MAX_HISTORY_TURN_CHARS = 200
MAX_CHAT_CONTEXT_PASSAGES = 5

ANALYSIS_SYSTEM = """You are a resume analysis expert. Compare the ACTUAL job description with the ACTUAL resume and propose SPECIFIC, job-specific edits. No generic advice.

Rules:
1. Read the job description line by line and identify every requirement, skill, tool and qualification.
2. Read the resume line by line and quote exactly what the candidate wrote.
3. For every suggestion quote the job requirement word-for-word, quote the resume text to change (or null when adding), and write replacement text that uses the job's wording.
4. Prioritize REQUIRED qualifications over preferred ones.
5. Only recommend skills that appear in the job description."""

ANALYSIS_SCHEMA = """Return exactly this JSON structure:
{
  "score": <number 0-100>,
  "matched_keywords": [<strings>],
  "missing_keywords": [<strings>],
  "suggested_edits": [
    {
      "section": "summary" | "experience" | "skills",
      "before": <exact resume text or null>,
      "after": <replacement text>,
      "reason": <how this change addresses the requirement>,
      "job_requirement": <exact quote from the job description>,
      "alignment_impact": <how this improves alignment>,
      "priority": "high" | "medium" | "low",
      "job_keywords_addressed": [<strings>]
    }
  ],
  "updated_draft": <the resume with the edits applied>
}

Return ONLY valid JSON. Start with { and end with }. No markdown, no code blocks, no explanation text."""

STRICT_RETRY_PREFIX = """Your previous reply could not be parsed as the required JSON object.
Reply again with a single JSON object and nothing else: no prose before or after it, no code fences, no comments, double-quoted keys and strings only."""

CHAT_SYSTEM = """You are a resume editing assistant helping a user improve their resume through conversation.

Rules:
1. No full rewrites. Propose 1-3 focused, incremental edits grounded in the resume and the job description.
2. Every edit quotes a specific job requirement and the exact resume text it changes (or null when adding).
3. If you need clarification, ask and set updated_draft to null.

Return exactly this JSON structure:
{
  "assistant_message": "<your reply to the user>",
  "proposed_edits": [
    {
      "section": "summary" | "experience" | "skills",
      "before": "<exact resume text or null>",
      "after": "<replacement text>",
      "reason": "<how this addresses the quoted requirement>",
      "job_requirement": "<exact requirement quote>"
    }
  ],
  "updated_draft": "<resume with only the proposed edits applied, or null>"
}

Return ONLY valid JSON."""


def build_analysis_prompt(
    resume_text: str,
    prioritized_job_text: str,
    key_requirements: str = "",
    rag_context: str = "",
) -> str:
    """Assemble the analysis prompt. Sections with no content are omitted."""
    parts = [ANALYSIS_SYSTEM, f"=== JOB DESCRIPTION ===\n{prioritized_job_text}"]
    if key_requirements:
        parts.append(f"=== KEY REQUIREMENTS ===\n{key_requirements}")
    if rag_context:
        parts.append(f"=== RELEVANT CONTEXT (retrieved matches) ===\n{rag_context}")
    parts.append(f"=== RESUME TEXT ===\n{resume_text}")
    parts.append(ANALYSIS_SCHEMA)
    return "\n\n".join(parts)


def build_strict_retry_prompt(prompt: str) -> str:
    return f"{STRICT_RETRY_PREFIX}\n\n{prompt}"


def _format_history(history: Sequence[ChatTurn]) -> str:
    turns = list(history or [])[-MAX_CHAT_HISTORY_TURNS:]
    return "\n".join(f"{t.role}: {t.content[:MAX_HISTORY_TURN_CHARS]}" for t in turns)


def build_chat_prompt(
    message: str,
    current_draft: str,
    prioritized_job_text: str,
    history: Optional[Sequence[ChatTurn]] = None,
    context: Optional[List[str]] = None,
) -> str:
    draft = current_draft
    if len(draft) > MAX_CHAT_DRAFT_CHARS:
        draft = draft[:MAX_CHAT_DRAFT_CHARS] + "[...]"

    parts = [
        CHAT_SYSTEM,
        f"=== CURRENT DRAFT RESUME ===\n{draft}",
        f"=== JOB DESCRIPTION ===\n{prioritized_job_text}",
    ]
    if context:
        parts.append("=== RELEVANT CONTEXT ===\n" + "\n\n---\n\n".join(context[:MAX_CHAT_CONTEXT_PASSAGES]))
    parts.append(f"=== PREVIOUS CONVERSATION ===\n{_format_history(history or [])}")
    parts.append(f"=== USER'S CURRENT MESSAGE ===\n{message}")
    return "\n\n".join(parts)
