"""HTML cleaning and text normalization for scraped job postings and resumes."""

from __future__ import annotations

import re
import warnings

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning

warnings.filterwarnings("ignore", category=MarkupResemblesLocatorWarning)

_TAG_REGEX = re.compile(r"<\s*/?\s*[a-zA-Z][a-zA-Z0-9]*(\s[^<>]*)?/?\s*>")
BLOCK_TAGS = ["p", "li", "div", "tr", "h1", "h2", "h3", "h4", "h5", "h6"]


def looks_like_html(text: str) -> bool:
    return bool(_TAG_REGEX.search(text or ""))


def clean_html(html: str) -> str:
    """Flatten markup to text, one block element per line."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for node in soup(["script", "style", "noscript"]):
        node.decompose()
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for block in soup.find_all(BLOCK_TAGS):
        block.insert_before("\n")
        block.insert_after("\n")
    return normalize_lines(soup.get_text())


def normalize_lines(text: str) -> str:
    """Normalize whitespace within lines but preserve line breaks."""
    if not text:
        return ""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = [re.sub(r"[\t\u00A0 ]+", " ", line).strip() for line in text.split("\n")]
    return "\n".join(lines).strip()


def clean_input_text(text: str) -> str:
    """Prepare text posted by the extension: strip markup if any, normalize whitespace."""
    if not text:
        return ""
    if looks_like_html(text):
        return clean_html(text)
    return normalize_lines(text)
