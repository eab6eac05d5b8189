"""Split raw OCR text into clean lines."""

from __future__ import annotations

import re

_WS_RE = re.compile(r"\s+")


def collapse_whitespace(line: str) -> str:
    return _WS_RE.sub(" ", line).strip()


def normalize_lines(raw_text: str) -> list[str]:
    """Return the non-empty lines of *raw_text*, trimmed and whitespace-collapsed."""
    lines = (collapse_whitespace(l) for l in re.split(r"\r?\n", raw_text))
    return [l for l in lines if l]


def upper_for_checks(line: str) -> str:
    return collapse_whitespace(line).upper()
