"""Generative backends, prompts and reply normalization."""

from .client import CompletionBackend, CompletionClient, OllamaBackend, OpenAIBackend, build_completion_client
from .normalizer import normalize, normalize_chat, synthesize_score

__all__ = [
    "CompletionBackend",
    "CompletionClient",
    "OllamaBackend",
    "OpenAIBackend",
    "build_completion_client",
    "normalize",
    "normalize_chat",
    "synthesize_score",
]
