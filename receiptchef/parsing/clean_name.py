"""Turn a kept receipt line into a presentable item name.

The steps run in a fixed order; each consumes the previous step's output.
Abbreviations are expanded only after store/PLU codes have been stripped so
that codes are never mistaken for words.
"""

from __future__ import annotations

import re
import unicodedata

_ABBREVIATIONS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(p, re.IGNORECASE), v)
    for p, v in [
        # meat
        (r"\bBNLS\b", "Boneless"),
        (r"\bBRST\b", "Breast"),
        (r"\bTHN\b", "Thin"),
        (r"\bTHK\b", "Thick"),
        (r"\bSL\b(?=\s|$)", "Slice"),
        (r"\bGRND\b", "Ground"),
        (r"\bGRD\b", "Ground"),
        (r"\bCHKN\b", "Chicken"),
        (r"\bCHCKN\b", "Chicken"),
        (r"\bCHK\b", "Chicken"),
        (r"\bTHGH\b", "Thigh"),
        (r"\bDRMSTK\b", "Drumstick"),
        (r"\bBRGR\b", "Burger"),
        # produce
        (r"\bGRN\b", "Green"),
        (r"\bORG\b", "Organic"),
        (r"\bEX\b", "Extra"),
        (r"\bTOM\b", "Tomato"),
        (r"\bPOT\b", "Potato"),
        (r"\bONN\b", "Onion"),
        (r"\bBROCC?\b", "Broccoli"),
        # dairy / pantry
        (r"\bCO[- ]?JACK\b", "Colby Jack"),
        (r"\bMOZZ\b", "Mozzarella"),
        (r"\bCHED\b", "Cheddar"),
        (r"\bPARM\b", "Parmesan"),
        (r"\bSHRD\b", "Shredded"),
        (r"\bSCE\b", "Sauce"),
        (r"\bVINEG\b", "Vinegar"),
        (r"\bVANIL\b", "Vanilla"),
        # misc
        (r"\bFRZ\b", "Frozen"),
        (r"\bGLUT\b", "Gluten"),
        (r"\bGF\b", "Gluten Free"),
        (r"\bFF\b", "Fat Free"),
        (r"\bLS\b", "Low Sodium"),
        (r"\bFNCY\b", "Fancy"),
        # common OCR misreads
        (r"\b0IL\b", "Oil"),
        (r"\bMI\s*IK\b", "Milk"),
    ]
]

_LEADING_CODE_RE = re.compile(
    r"^\s*(?=[A-Za-z0-9]{4,}\s)(?=(?:[A-Za-z0-9]*\d){2})[A-Za-z0-9]{4,}\s+"
)
_TRAILING_CODES_RE = re.compile(
    r"(?:\s+(?:[A-Z]?\d{3,}[A-Z]{0,3}|\$?\d+\.\d{2}[A-Z]?))+(?:\s+[A-Z])*\s*$",
    re.IGNORECASE,
)


def normalize_unicode(s: str) -> str:
    return unicodedata.normalize("NFKD", s).encode("ascii", "ignore").decode("ascii")


def normalize_spacing(s: str) -> str:
    s = re.sub(r"\s+", " ", s)
    s = re.sub(r"\s+([/-])", r"\1", s)
    s = re.sub(r"([/-])\s+", r"\1", s)
    return s.strip()


def strip_leading_code(s: str) -> str:
    """Drop a leading store/PLU code such as ``38066`` or ``470B6``.

    Only a first token of 4+ alphanumerics containing at least two digits is
    removed; all-letter tokens like ``OREO`` are always kept.
    """
    return _LEADING_CODE_RE.sub("", s, count=1)


def strip_trailing_codes(s: str) -> str:
    s = re.sub(r"[?)]", "", s)
    return _TRAILING_CODES_RE.sub("", s).strip()


def split_camel_case(s: str) -> str:
    return re.sub(r"([a-z])([A-Z])", r"\1 \2", s)


def expand_abbreviations(s: str) -> str:
    for pattern, replacement in _ABBREVIATIONS:
        s = pattern.sub(replacement, s)
    return s


def normalize_hyphens(s: str) -> str:
    return re.sub(r"-+", " ", s)


def title_case(s: str) -> str:
    return re.sub(r"\b[a-z]", lambda m: m.group().upper(), s.lower())


_STEPS = (
    normalize_unicode,
    normalize_spacing,
    strip_leading_code,
    strip_trailing_codes,
    split_camel_case,
    expand_abbreviations,
    normalize_hyphens,
    title_case,
)


def clean_name(raw: str) -> str:
    """Return the presentable name for a raw receipt line."""
    s = raw
    for step in _STEPS:
        s = step(s)
    return re.sub(r"\s+", " ", s).strip()
