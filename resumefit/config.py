"""
Configuration settings for the ResumeFit AI service.

All API keys are OPTIONAL - the service answers with a rule-based analysis
when no generative backend is reachable.
OpenAI is used when OPENAI_API_KEY is set; Ollama unless USE_OLLAMA=false.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Look for .env file in project root (parent of resumefit/)
_project_root = Path(__file__).parent.parent
_env_path = _project_root / ".env"
if _env_path.exists():
    load_dotenv(dotenv_path=_env_path)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


# ===================
# Server
# ===================

HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "3001"))

# ===================
# Generative backends
# ===================

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

USE_OLLAMA = _env_bool("USE_OLLAMA", True)
OLLAMA_URL = os.getenv("OLLAMA_URL", "http://localhost:11434")
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "llama3.1")
OLLAMA_MAX_RETRIES = int(os.getenv("OLLAMA_MAX_RETRIES", "5"))
OLLAMA_RETRY_DELAY = _env_float("OLLAMA_RETRY_DELAY", 2.0)

# Timeouts in seconds. Analysis prompts are larger than chat prompts.
OPENAI_ANALYSIS_TIMEOUT = _env_float("OPENAI_ANALYSIS_TIMEOUT", 120.0)
OPENAI_CHAT_TIMEOUT = _env_float("OPENAI_CHAT_TIMEOUT", 60.0)
OLLAMA_ANALYSIS_TIMEOUT = _env_float("OLLAMA_ANALYSIS_TIMEOUT", 180.0)
OLLAMA_CHAT_TIMEOUT = _env_float("OLLAMA_CHAT_TIMEOUT", 120.0)

# ===================
# Retrieval
# ===================

VECTOR_BACKEND = os.getenv("RESUMEFIT_VECTOR_BACKEND", "chroma")  # "chroma" | "faiss"
CHROMA_URL = os.getenv("CHROMA_PATH", "http://localhost:8000")
COLLECTION_NAME = os.getenv("RESUMEFIT_COLLECTION", "resumefit_knowledge")
EMBEDDING_MODEL = os.getenv("RESUMEFIT_EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2")

STORE_CALL_TIMEOUT = _env_float("RESUMEFIT_STORE_CALL_TIMEOUT", 5.0)
STORAGE_PHASE_TIMEOUT = _env_float("RESUMEFIT_STORAGE_PHASE_TIMEOUT", 10.0)
QUERY_TIMEOUT = _env_float("RESUMEFIT_QUERY_TIMEOUT", 5.0)
HEARTBEAT_TIMEOUT = _env_float("RESUMEFIT_HEARTBEAT_TIMEOUT", 5.0)
HEALTH_POLL_INTERVAL = _env_float("RESUMEFIT_HEALTH_POLL_INTERVAL", 30.0)
CHAT_RETRIEVAL_TIMEOUT = _env_float("RESUMEFIT_CHAT_RETRIEVAL_TIMEOUT", 10.0)

# ===================
# Analysis requests
# ===================

ANALYSIS_DEADLINE = _env_float("RESUMEFIT_ANALYSIS_DEADLINE", 900.0)  # 15 minutes
WATCHDOG_INTERVAL = _env_float("RESUMEFIT_WATCHDOG_INTERVAL", 60.0)

# ===================
# Feature Flags
# ===================

def has_openai() -> bool:
    """Check if the hosted OpenAI backend should be used."""
    return bool(OPENAI_API_KEY)


def use_ollama() -> bool:
    """Check if the local Ollama backend is enabled."""
    return USE_OLLAMA
