"""
subterm - LLM subtitle translator with episode-wide terminology consistency.

Features:
- Term extraction pass that builds a reviewable glossary
- Chunked, concurrent translation with per-chunk retry and fallback
- Block and timestamp structure preserved exactly
- Monotonic progress reporting for both phases
- Standalone SRT to ASS conversion
"""

__version__ = "1.0.0"

from .models import SubtitleBlock, TranslationUnit, TranslationResult, TranslatingInfo
from .errors import (
    TranslatorError,
    ConfigError,
    MalformedInputError,
    SchemaError,
    CountMismatchError,
    LLMServiceError,
    AnalysisError,
    ConsistencyError,
    ReassemblyError,
    InvalidTransitionError,
)
from .parser import parse_blocks, flatten_units, validate_srt_file
from .glossary import Glossary, parse_terms, serialize_terms, merge_terms, load_glossary, save_glossary
from .text_utils import normalize_translated_text
from .config import TranslatorConfig
from .llm_client import TranslationService, OpenAIService, create_service
from .analysis import extract_terms
from .translator import chunk_units, run_translation, translate_chunk_with_retries
from .assembler import reassemble
from .session import TranslationSession, transition
from .ass import convert_srt_to_ass

__all__ = [
    # Models
    "SubtitleBlock",
    "TranslationUnit",
    "TranslationResult",
    "TranslatingInfo",
    "TranslatorConfig",
    "Glossary",
    # Errors
    "TranslatorError",
    "ConfigError",
    "MalformedInputError",
    "SchemaError",
    "CountMismatchError",
    "LLMServiceError",
    "AnalysisError",
    "ConsistencyError",
    "ReassemblyError",
    "InvalidTransitionError",
    # Parsing
    "parse_blocks",
    "flatten_units",
    "validate_srt_file",
    # Glossary
    "parse_terms",
    "serialize_terms",
    "merge_terms",
    "load_glossary",
    "save_glossary",
    # Services
    "TranslationService",
    "OpenAIService",
    "create_service",
    # Orchestration
    "extract_terms",
    "chunk_units",
    "run_translation",
    "translate_chunk_with_retries",
    "reassemble",
    "TranslationSession",
    "transition",
    # Utils
    "normalize_translated_text",
    "convert_srt_to_ass",
]
