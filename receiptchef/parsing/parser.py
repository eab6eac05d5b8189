"""Receipt text → ordered, deduplicated candidate items."""

from __future__ import annotations

import logging
import re
import uuid
from collections import Counter
from dataclasses import dataclass, field

from .clean_name import clean_name
from .noise import classify_line, is_totals_start
from .normalize import normalize_lines

logger = logging.getLogger(__name__)


@dataclass
class CandidateItem:
    """A receipt line that survived noise filtering and cleanup."""

    id: str
    name: str
    source_line: str
    selected: bool = True


@dataclass
class NoiseHit:
    line: str
    reason: str


@dataclass
class ParseReport:
    quality: str  # good | ok | bad
    total_lines: int
    kept_items: int
    rejected_lines: int
    kept_ratio: float
    reasons_count: dict[str, int] = field(default_factory=dict)
    message: str | None = None


@dataclass
class ParseResult:
    items: list[CandidateItem]
    rejected: list[NoiseHit]
    report: ParseReport
    stopped_at: str | None = None  # line that opened the totals section


def _dedupe_key(name: str) -> str:
    return re.sub(r"\s+", " ", name.upper()).strip()


def dedupe(names: list[str]) -> list[str]:
    """Drop exact duplicates, comparing case- and whitespace-insensitively.

    The first occurrence of each name is kept verbatim and first-occurrence
    order is preserved.  This is not fuzzy: ``Milk`` and ``Milk 2%`` differ.
    """
    seen: set[str] = set()
    out: list[str] = []
    for name in names:
        key = _dedupe_key(name)
        if key in seen:
            continue
        seen.add(key)
        out.append(name)
    return out


def _build_report(total_lines: int, kept: int, rejected: list[NoiseHit]) -> ParseReport:
    if kept < 3:
        quality, message = "bad", "Very few item-like lines detected."
    elif kept < 8:
        quality, message = "ok", "Some items detected, but scan may be incomplete."
    else:
        quality, message = "good", None

    return ParseReport(
        quality=quality,
        total_lines=total_lines,
        kept_items=kept,
        rejected_lines=len(rejected),
        kept_ratio=kept / total_lines if total_lines else 0.0,
        reasons_count=dict(Counter(hit.reason for hit in rejected)),
        message=message,
    )


def parse_receipt(raw_text: str) -> ParseResult:
    """Parse raw OCR text into candidate items.

    Lines are classified in order and scanning stops at the first line that
    opens the totals section; nothing after it is looked at.  Kept lines are
    cleaned, then deduplicated on their cleaned names.
    """
    lines = normalize_lines(raw_text)

    kept: list[str] = []
    rejected: list[NoiseHit] = []
    stopped_at: str | None = None

    for i, line in enumerate(lines):
        if is_totals_start(line):
            logger.debug("[%d] totals section starts: %s", i, line)
            stopped_at = line
            break

        verdict = classify_line(line)
        logger.debug("[%d] %s (%s) %s", i, "keep" if verdict.keep else "drop", verdict.rule, line)
        if verdict.keep:
            kept.append(line)
        else:
            rejected.append(NoiseHit(line=line, reason=verdict.rule))

    # Clean first so that e.g. "BNLS CHKN" and "Boneless Chicken" collapse
    cleaned: dict[str, str] = {}
    names: list[str] = []
    for line in kept:
        name = clean_name(line)
        if not name:
            rejected.append(NoiseHit(line=line, reason="empty_after_clean"))
            continue
        cleaned.setdefault(_dedupe_key(name), line)
        names.append(name)

    items = [
        CandidateItem(
            id=uuid.uuid4().hex,
            name=name,
            source_line=cleaned[_dedupe_key(name)],
        )
        for name in dedupe(names)
    ]

    logger.info(
        "Parsed receipt: %d lines, %d items, %d rejected",
        len(lines), len(items), len(rejected),
    )
    return ParseResult(
        items=items,
        rejected=rejected,
        report=_build_report(len(lines), len(items), rejected),
        stopped_at=stopped_at,
    )
