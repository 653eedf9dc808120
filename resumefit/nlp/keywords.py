"""Literal keyword and experience-requirement detection for the rule-based fallback.

Vocabulary terms are matched with a spaCy PhraseMatcher over a blank English
pipeline, so matches fall on token boundaries: "java" never matches inside
"javascript" and "git" never matches inside "github".
"""

from __future__ import annotations

import re
import threading
from typing import Dict, List, Sequence, Set, Tuple

TECH_KEYWORDS = (
    "python", "javascript", "typescript", "java", "react", "node", "angular", "vue",
    "django", "flask", "spring", "sql", "postgresql", "postgres", "mysql", "mongodb",
    "redis", "aws", "azure", "gcp", "docker", "kubernetes", "terraform", "ansible",
    "git", "github", "ci/cd", "jenkins", "linux", "unix", "html", "css", "sass",
    "webpack", "graphql", "rest", "api", "microservices", "agile", "scrum", "jira",
    "confluence", "figma", "machine learning", "data science", "pandas", "numpy",
    "tensorflow", "pytorch", "scikit-learn", "matlab", "excel", "tableau", "power bi",
)

YEARS_PATTERN = re.compile(r"\b\d+\+?\s*years?\b", re.I)

STOPWORDS = {"the", "and", "or", "with", "for", "that", "this", "from", "into", "your", "you", "our"}

_NLP = None
_matchers: Dict[Tuple[str, ...], object] = {}
_matcher_lock = threading.Lock()


def _get_nlp():
    global _NLP
    if _NLP is None:
        import spacy

        _NLP = spacy.blank("en")
    return _NLP


def _get_matcher(vocabulary: Tuple[str, ...]):
    """One PhraseMatcher per vocabulary, each term under its own label."""
    matcher = _matchers.get(vocabulary)
    if matcher is None:
        with _matcher_lock:
            matcher = _matchers.get(vocabulary)
            if matcher is None:
                from spacy.matcher import PhraseMatcher

                nlp = _get_nlp()
                matcher = PhraseMatcher(nlp.vocab, attr="LOWER")
                for term in vocabulary:
                    matcher.add(term, [nlp.make_doc(term)])
                _matchers[vocabulary] = matcher
    return matcher


def find_keywords(text: str, vocabulary: Sequence[str] = TECH_KEYWORDS) -> List[str]:
    """Return vocabulary terms present in text, in vocabulary order."""
    if not text or not text.strip():
        return []
    vocabulary = tuple(vocabulary)
    nlp = _get_nlp()
    doc = nlp.make_doc(text)
    found = {nlp.vocab.strings[match_id] for match_id, _, _ in _get_matcher(vocabulary)(doc)}
    return [term for term in vocabulary if term in found]


def find_experience_requirements(text: str) -> List[str]:
    """Distinct 'N years' / 'N+ years' mentions in order of appearance."""
    seen: Set[str] = set()
    found: List[str] = []
    for match in YEARS_PATTERN.finditer(text or ""):
        value = match.group(0)
        if value.lower() not in seen:
            seen.add(value.lower())
            found.append(value)
    return found


def significant_words(text: str, limit: int = 5, min_length: int = 3) -> List[str]:
    """First words of a phrase worth treating as keywords."""
    words = []
    for raw in (text or "").split():
        word = raw.strip(".,;:!?()[]\"'")
        if len(word) >= min_length and word.lower() not in STOPWORDS:
            words.append(word)
        if len(words) >= limit:
            break
    return words


def dedupe(values) -> List[str]:
    """Case-insensitive de-duplication preserving first occurrence."""
    seen: Set[str] = set()
    out: List[str] = []
    for value in values:
        if not isinstance(value, str):
            continue
        value = value.strip()
        if value and value.lower() not in seen:
            seen.add(value.lower())
            out.append(value)
    return out
