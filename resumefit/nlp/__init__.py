"""Text processing: input cleaning, section detection and chunking."""

from .chunker import chunk_job_description, chunk_resume, chunk_text
from .cleaner import clean_html, clean_input_text
from .section_detector import (
    build_prioritized_job_text,
    detect_sections,
    extract_job_sections,
    label_lines,
)

__all__ = [
    "build_prioritized_job_text",
    "chunk_job_description",
    "chunk_resume",
    "chunk_text",
    "clean_html",
    "clean_input_text",
    "detect_sections",
    "extract_job_sections",
    "label_lines",
]
