"""ResumeFit - resume to job description alignment service with retrieval-augmented prompts."""

# Set environment variables BEFORE any scientific/ML library imports
# to prevent OpenMP conflicts and tokenizer fork warnings.
import os as _os
_os.environ.setdefault("KMP_DUPLICATE_LIB_OK", "TRUE")
_os.environ.setdefault("TOKENIZERS_PARALLELISM", "false")
_os.environ.setdefault("OMP_NUM_THREADS", "1")
del _os

__version__ = "1.0.0"

__all__ = []
