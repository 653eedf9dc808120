"""Normalize model replies into AnalysisResult / ChatReply.

Models answer in one of several JSON shapes. Each shape has a reader; readers
are tried in a fixed order and the first that recognizes the object wins:

1. ``canonical``     -- ``suggested_edits`` list
2. ``resume_edits``  -- ``resume_edits`` list with ``top_alignment_gaps``
3. ``gaps``          -- ``gaps`` list, each gap doubling as an edit
4. canonical-partial -- any of ``score``/``matched_keywords``/``missing_keywords``/``updated_draft``
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..exceptions import MalformedResponseError
from ..models import AlignmentGap, AnalysisResult, ChatReply, ProposedEdit, SkillsSection, SuggestedEdit
from ..nlp.keywords import dedupe, significant_words

EDIT_SECTIONS = ("summary", "experience", "skills")
PRIORITIES = ("high", "medium", "low")
GAP_TYPES = ("missing", "weak", "vague")
PARTIAL_KEYS = ("score", "matched_keywords", "missing_keywords", "updated_draft")
NOT_FOUND = "NOT FOUND IN RESUME"

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)```", re.I)


# ----------------------------------------------------------------------
# JSON extraction
# ----------------------------------------------------------------------

def extract_json_text(raw: str) -> str:
    """Strip code fences and surrounding prose; return first ``{`` through last ``}``."""
    text = (raw or "").strip()
    fenced = _FENCE_RE.findall(text)
    if fenced:
        text = fenced[0].strip()
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise MalformedResponseError("No JSON object found in model reply")
    return text[start : end + 1]


def parse_json_object(raw: str) -> Dict[str, Any]:
    try:
        data = json.loads(extract_json_text(raw))
    except ValueError as exc:
        raise MalformedResponseError(f"Invalid JSON in model reply: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedResponseError("Model reply is not a JSON object")
    return data


# ----------------------------------------------------------------------
# Field coercion
# ----------------------------------------------------------------------

def _first(item: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = item.get(key)
        if value not in (None, "", []):
            return value
    return None


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _text_or_none(value: Any) -> Optional[str]:
    text = _text(value)
    if not text or text.lower() == "null":
        return None
    return text


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [t for t in (_text(v) for v in value) if t]


def coerce_section(value: Any) -> str:
    """Map a free-form section name onto summary/experience/skills."""
    name = _text(value).lower()
    if name in EDIT_SECTIONS:
        return name
    if name.startswith("skill"):
        return "skills"
    if name in ("profile", "objective"):
        return "summary"
    # projects, work history and anything unknown
    return "experience"


def coerce_priority(value: Any) -> str:
    name = _text(value).lower()
    return name if name in PRIORITIES else "medium"


def coerce_score(value: Any) -> Optional[int]:
    """Round and clamp a numeric score. Returns None when the value is not a number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip().rstrip("%"))
        except ValueError:
            return None
    if isinstance(value, int):
        # Python ints are unbounded; clamp before any float conversion
        return max(0, min(100, value))
    if not isinstance(value, float) or not math.isfinite(value):
        return None
    return max(0, min(100, int(round(value))))


def synthesize_score(gap_count: int, edit_count: int) -> int:
    """Score derived from structure when the model gives none."""
    return max(0, min(100, 100 - 10 * gap_count - 5 * edit_count))


# ----------------------------------------------------------------------
# Item readers
# ----------------------------------------------------------------------

def _edit(item: Dict[str, Any]) -> SuggestedEdit:
    return SuggestedEdit(
        section=coerce_section(item.get("section")),
        before=_text_or_none(_first(item, "before", "current")),
        after=_text(_first(item, "after", "suggested")),
        reason=_text(_first(item, "reason", "explanation")),
        job_requirement=_text(_first(item, "job_requirement", "requirement")),
        alignment_impact=_text(_first(item, "alignment_impact", "impact")),
        priority=coerce_priority(item.get("priority")),
        keywords_addressed=_string_list(_first(item, "keywords_addressed", "job_keywords_addressed", "keywords")),
    )


def _gap(item: Dict[str, Any]) -> AlignmentGap:
    gap_type = _text(item.get("gap_type")).lower()
    return AlignmentGap(
        job_requirement=_text(_first(item, "job_requirement", "requirement")),
        evidence_from_job=_text(_first(item, "evidence_from_job", "job_requirement", "requirement")),
        evidence_from_resume=_text(_first(item, "evidence_from_resume", "before", "current")) or NOT_FOUND,
        gap_type=gap_type if gap_type in GAP_TYPES else "missing",
        priority=coerce_priority(item.get("priority")),
    )


def _dicts(value: Any) -> List[Dict[str, Any]]:
    return [v for v in value if isinstance(v, dict)] if isinstance(value, list) else []


def _skills_section(value: Any) -> Optional[SkillsSection]:
    if not isinstance(value, dict) or not value:
        return None
    return SkillsSection(
        current=_text(value.get("current")),
        suggested=_text(value.get("suggested")),
        added_keywords=_string_list(value.get("added_keywords")),
    )


def keywords_from_gaps(gaps: List[AlignmentGap], per_gap: int = 5) -> List[str]:
    words: List[str] = []
    for gap in gaps:
        words.extend(significant_words(gap.evidence_from_job, limit=per_gap))
    return words


# ----------------------------------------------------------------------
# Shape readers
# ----------------------------------------------------------------------

def _build(
    data: Dict[str, Any],
    original_resume: str,
    edits: List[SuggestedEdit],
    gaps: List[AlignmentGap],
    origin: str,
) -> AnalysisResult:
    score = coerce_score(data.get("score"))
    if score is None:
        score = synthesize_score(len(gaps), len(edits))

    skills = _skills_section(data.get("skills_section"))
    missing = _string_list(data.get("missing_keywords"))
    if origin != "canonical":
        missing += keywords_from_gaps(gaps)
    if skills is not None:
        missing += skills.added_keywords

    draft = data.get("updated_draft")
    return AnalysisResult(
        score=score,
        matched_keywords=dedupe(_string_list(data.get("matched_keywords"))),
        missing_keywords=dedupe(missing),
        suggested_edits=edits,
        updated_draft=draft if isinstance(draft, str) and draft.strip() else original_resume,
        alignment_gaps=gaps,
        skills_section=skills,
        ignored_noise=_string_list(data.get("ignored_noise")),
        origin=origin,
    )


def _read_canonical(data, original_resume) -> Optional[AnalysisResult]:
    if not isinstance(data.get("suggested_edits"), list):
        return None
    edits = [_edit(e) for e in _dicts(data["suggested_edits"])]
    gaps = [_gap(g) for g in _dicts(_first(data, "top_alignment_gaps", "alignment_gaps"))]
    return _build(data, original_resume, edits, gaps, "canonical")


def _read_resume_edits(data, original_resume) -> Optional[AnalysisResult]:
    if not isinstance(data.get("resume_edits"), list):
        return None
    edits = [_edit(e) for e in _dicts(data["resume_edits"])]
    gaps = [_gap(g) for g in _dicts(data.get("top_alignment_gaps"))]
    return _build(data, original_resume, edits, gaps, "resume_edits")


def _read_gaps(data, original_resume) -> Optional[AnalysisResult]:
    if not isinstance(data.get("gaps"), list):
        return None
    items = _dicts(data["gaps"])
    return _build(data, original_resume, [_edit(i) for i in items], [_gap(i) for i in items], "gaps")


def _read_partial(data, original_resume) -> Optional[AnalysisResult]:
    if not any(key in data for key in PARTIAL_KEYS):
        return None
    return _build(data, original_resume, [], [], "canonical")


SHAPE_READERS: Tuple[Callable[[Dict[str, Any], str], Optional[AnalysisResult]], ...] = (
    _read_canonical,
    _read_resume_edits,
    _read_gaps,
    _read_partial,
)


def normalize(raw_text: str, original_resume_text: str) -> AnalysisResult:
    """Parse a model reply into the canonical AnalysisResult.

    Raises:
        MalformedResponseError: no JSON object, or no recognizable shape.
    """
    data = parse_json_object(raw_text)
    for reader in SHAPE_READERS:
        result = reader(data, original_resume_text)
        if result is not None:
            return result
    raise MalformedResponseError(f"Unrecognized reply shape (keys: {', '.join(sorted(data)[:10]) or 'none'})")


def normalize_chat(raw_text: str, current_draft: Optional[str] = None) -> ChatReply:
    """Parse a chat reply. ``assistant_message`` is required.

    An ``updated_draft`` identical to the current draft carries no change and
    becomes None.
    """
    data = parse_json_object(raw_text)
    message = data.get("assistant_message")
    if not isinstance(message, str) or not message.strip():
        raise MalformedResponseError("Chat reply has no assistant_message")

    edits = [
        ProposedEdit(
            section=coerce_section(item.get("section")),
            before=_text_or_none(_first(item, "before", "current")),
            after=_text(_first(item, "after", "suggested")),
            reason=_text(_first(item, "reason", "explanation")),
            job_requirement=_text(_first(item, "job_requirement", "requirement")),
        )
        for item in _dicts(data.get("proposed_edits"))
    ]

    draft = data.get("updated_draft")
    if not isinstance(draft, str) or not draft.strip() or draft == current_draft:
        draft = None
    return ChatReply(assistant_message=message.strip(), proposed_edits=edits, updated_draft=draft)
