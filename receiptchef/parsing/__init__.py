"""Receipt OCR text parsing: noise filtering, name cleanup and dedup."""

from .clean_name import clean_name
from .noise import RULES, LineVerdict, NoiseRule, classify_line, is_totals_start
from .normalize import normalize_lines
from .parser import (
    CandidateItem,
    NoiseHit,
    ParseReport,
    ParseResult,
    dedupe,
    parse_receipt,
)

__all__ = [
    "CandidateItem",
    "LineVerdict",
    "NoiseHit",
    "NoiseRule",
    "ParseReport",
    "ParseResult",
    "RULES",
    "classify_line",
    "clean_name",
    "dedupe",
    "is_totals_start",
    "normalize_lines",
    "parse_receipt",
]
