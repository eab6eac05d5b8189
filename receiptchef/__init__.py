"""Receipt OCR → classified pantry candidates."""

from .config import (
    DatabaseConfig,
    GuardsConfig,
    LLMConfig,
    ReceiptChefConfig,
    ServerConfig,
    load_config,
)
from .parsing import CandidateItem, ParseResult, clean_name, parse_receipt
from .canon import (
    CanonicalizationClassifier,
    CanonicalizeService,
    CanonResult,
    DailyRateLimiter,
    make_key,
)
from .llm import ClassifierBackend, create_backend

__all__ = [
    "CandidateItem",
    "CanonResult",
    "CanonicalizationClassifier",
    "CanonicalizeService",
    "ClassifierBackend",
    "DailyRateLimiter",
    "DatabaseConfig",
    "GuardsConfig",
    "LLMConfig",
    "ParseResult",
    "ReceiptChefConfig",
    "ServerConfig",
    "clean_name",
    "create_backend",
    "load_config",
    "make_key",
    "parse_receipt",
]
