"""Section detection for resumes and job descriptions using keyword triggers.

A line that contains a trigger keyword (case-insensitive substring) opens a new
section; every following line belongs to it until the next trigger.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

DEFAULT_SECTION = "other"

# Ordered: the first matching trigger wins.
RESUME_TRIGGERS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("summary", ("summary", "objective", "profile")),
    ("experience", ("experience", "work history", "employment")),
    ("skills", ("skill",)),
    ("education", ("education", "degree", "university")),
    ("projects", ("project",)),
)

JOB_TRIGGERS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("requirements", ("required", "must have", "requirements", "minimum")),
    ("qualifications", ("qualification", "education", "degree", "bachelor", "master")),
    ("skills", ("skill", "technology", "proficient", "expert")),
    ("responsibilities", ("responsibilit", "duties", "what you")),
    ("preferred", ("preferred", "nice to have", "bonus", "plus")),
)

# Order and headings of the prioritized job text
JOB_SECTION_ORDER = ("requirements", "qualifications", "skills", "responsibilities", "preferred", DEFAULT_SECTION)

JOB_SECTION_HEADINGS = {
    "requirements": "=== REQUIRED QUALIFICATIONS ===",
    "qualifications": "=== EDUCATION/QUALIFICATIONS ===",
    "skills": "=== SKILLS & TECHNOLOGIES ===",
    "responsibilities": "=== RESPONSIBILITIES ===",
    "preferred": "=== PREFERRED (Nice to Have) ===",
    DEFAULT_SECTION: "=== ADDITIONAL INFORMATION ===",
}

KEY_REQUIREMENT_SECTIONS = ("requirements", "qualifications", "skills")


@dataclass
class Section:
    """A contiguous block of lines under one section label."""

    name: str
    lines: List[str] = field(default_factory=list)
    start_line: int = 0

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


def triggers_for(source_type: str) -> Sequence[Tuple[str, Tuple[str, ...]]]:
    if source_type == "resume":
        return RESUME_TRIGGERS
    if source_type == "job":
        return JOB_TRIGGERS
    raise ValueError(f"Unknown source type: {source_type!r}")


def detect_trigger(line: str, source_type: str) -> Optional[str]:
    """Return the section a line opens, or None if it matches no trigger."""
    lower = line.lower()
    for name, keywords in triggers_for(source_type):
        if any(kw in lower for kw in keywords):
            return name
    return None


def iter_lines(text: str) -> List[str]:
    """Non-empty, trimmed lines."""
    return [line.strip() for line in (text or "").split("\n") if line.strip()]


def label_lines(text: str, source_type: str) -> List[Tuple[str, str]]:
    """Pair every non-empty line with the section it falls in."""
    labeled: List[Tuple[str, str]] = []
    current = DEFAULT_SECTION
    for line in iter_lines(text):
        current = detect_trigger(line, source_type) or current
        labeled.append((line, current))
    return labeled


def detect_sections(text: str, source_type: str) -> List[Section]:
    """Split text into ordered section blocks.

    A trigger for the section that is already active continues the block
    instead of starting a new one.
    """
    sections: List[Section] = []
    current: Optional[Section] = None

    for i, line in enumerate(iter_lines(text)):
        name = detect_trigger(line, source_type)
        if current is None or (name is not None and name != current.name):
            current = Section(name=name or DEFAULT_SECTION, start_line=i)
            sections.append(current)
        current.lines.append(line)

    return sections


def extract_job_sections(job_text: str) -> Dict[str, List[str]]:
    """Group job description blocks into buckets keyed by section name."""
    buckets: Dict[str, List[str]] = {name: [] for name in JOB_SECTION_ORDER}
    for section in detect_sections(job_text, "job"):
        buckets[section.name].append(section.text)
    return buckets


def build_prioritized_job_text(buckets: Dict[str, List[str]]) -> str:
    """Render buckets requirements-first, each under its heading. Nothing is dropped."""
    parts = []
    for name in JOB_SECTION_ORDER:
        blocks = buckets.get(name) or []
        if blocks:
            parts.append(f"{JOB_SECTION_HEADINGS[name]}\n" + "\n\n".join(blocks))
    return "\n\n".join(parts)


def key_requirements_summary(buckets: Dict[str, List[str]]) -> str:
    blocks: List[str] = []
    for name in KEY_REQUIREMENT_SECTIONS:
        blocks.extend(buckets.get(name) or [])
    return "\n\n".join(blocks)
