"""Line-level noise filtering for OCR'd grocery receipts.

Every receipt line is run through an ordered list of :class:`NoiseRule`
objects.  The first rule whose predicate matches decides whether the line is
kept or dropped, so the precedence between layers is fixed by the order of
``RULES`` alone:

1. trivial rejects (empty, tiny fragments, promotional phrases)
2. pure-code rejects (barcodes, tracking IDs)
3. structural rejects (addresses, phones, dates, store metadata, payment and
   totals keywords, quantity/weight/deal formats, percentages, numeric-only)
4. digit dominance
5. item + barcode override (keep)
6. default: keep lines with enough letters

Scanning a whole receipt additionally stops at the first line that opens the
totals section (see :func:`is_totals_start`).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

from .normalize import upper_for_checks

KEEP = "keep"
DROP = "drop"

# OCR commonly mangles "LB" into "1B", "IB" or "L8"
_LBX = r"(?:LBS?|1B|IB|L8|KG|K6|OZ)"

_WORD_RE = re.compile(r"[A-Z]{3,}")
_LONG_DIGITS_RE = re.compile(r"\d{8,}")
_LETTER_RE = re.compile(r"[A-Z]")
_DIGIT_RE = re.compile(r"\d")


@dataclass(frozen=True)
class LineFeatures:
    """Pre-computed views of a line shared by all rule predicates."""

    raw: str
    upper: str
    compact: str
    letters: int
    digits: int

    @classmethod
    def of(cls, line: str) -> LineFeatures:
        upper = upper_for_checks(line)
        return cls(
            raw=line,
            upper=upper,
            compact=upper.replace(" ", ""),
            letters=len(_LETTER_RE.findall(upper)),
            digits=len(_DIGIT_RE.findall(upper)),
        )

    @property
    def has_word(self) -> bool:
        return _WORD_RE.search(self.upper) is not None


@dataclass(frozen=True)
class NoiseRule:
    name: str
    layer: str
    verdict: str
    predicate: Callable[[LineFeatures], bool]


@dataclass(frozen=True)
class LineVerdict:
    keep: bool
    rule: str
    layer: str

    @property
    def reason(self) -> str | None:
        """Drop reason, or ``None`` for kept lines."""
        return None if self.keep else self.rule


def _any(*patterns: str) -> Callable[[LineFeatures], bool]:
    compiled = [re.compile(p) for p in patterns]
    return lambda f: any(p.search(f.upper) for p in compiled)


# ---------------------------------------------------------------------------
# Layer 1: trivial rejects
# ---------------------------------------------------------------------------

_is_promo = _any(
    r"\bYOU SAVED\b",
    r"\bSAVINGS\b",
    r"\bSAV INGS\b",
    r"\bSCANNED COUPON\b",
    r"\bMFR ?CPN\b",
    r"\bKROGER PLUS CUSTOMER\b",
    r"\bFRESH FOOD\b",
    r"\bLOW PRICES\b",
    r"\bSAVE MONEY\b",
    r"\bLIVE BETTER\b",
    r"EXPECT MORE.*PAY LESS",
    r"\bCARTWHEEL\b",
    r"\bREDUCED TO CLEAR\b",
    r"\bSEE BACK\b",
    r"\bCHANCE\b.*\bWIN\b",
    r"\bWIN ?\$",
    r"^SAVE\s+\$?[.\d]+",
    r"^WAS\s",
    r"^CP:",
    r"\bSAVED\b.*(\bOFF\b|\$)",
    r"\b(OFF|0FF|DISCOUNT|DISC|COUPON|CPN|PROMO|DEAL)\b.*(\$\s*\d|\b\d+\.\d{2}\b)",
)

# ---------------------------------------------------------------------------
# Layer 2: pure codes
# ---------------------------------------------------------------------------


def _is_pure_code(f: LineFeatures) -> bool:
    return re.fullmatch(r"[A-Z0-9]{8,}", f.compact) is not None and not f.has_word


# ---------------------------------------------------------------------------
# Layer 3: structural rejects
# ---------------------------------------------------------------------------

_STATES = (
    "AL|AK|AZ|AR|CA|CO|CT|DE|FL|GA|HI|IA|ID|IL|IN|KS|KY|LA|MA|MD|ME|MI|MN|MO|"
    "MS|MT|NC|ND|NE|NH|NJ|NM|NV|NY|OH|OK|OR|PA|RI|SC|SD|TN|TX|UT|VA|VT|WA|WI|"
    "WV|WY"
)

_is_phone = _any(
    r"\(\s*\d{3}\s*\)\s*\d{3}\s*-\s*\d{4}",
    r"\b\d{3}\s*[-.)]\s*\d{3}\s*[-.]\s*\d{4}\b",
    r"\b\d{3}\s\d{3}\s\d{4}\b",
    r"^(STORE )?PHONE:?",
)

_is_address = _any(
    r"^\d{2,6}\s+[A-Z0-9].*\b(ST|STREET|RD|ROAD|AVE|AVENUE|BLVD|DR|DRIVE|LN|LANE"
    r"|HWY|HIGHWAY|PKWY|PARKWAY|CT|COURT)\b\.?",
    r"^\d{2,6}\s+[NESW]\.?\s+[A-Z][A-Z\s.'-]{3,}$",
    rf"^[A-Z][A-Z\s.'-]+,?\s+({_STATES})(\s+\d{{5}}(-\d{{4}})?)?$",
    r"\b[A-Z]{2}\s+\d{5}(-\d{4})?\b",
)

_is_date_time = _any(
    r"\b\d{1,2}/\d{1,2}/\d{2,4}\b",
    r"\b\d{1,2}-\d{1,2}-\d{2,4}\b",
    r"\b\d{1,2}:\d{2}(:\d{2})?\b",
)

_STORE_SECTIONS = frozenset({
    "GROCERY", "HOME", "PETS", "CLEANING SUPPLIES", "PRODUCE", "DELI",
    "BAKERY", "MEAT", "FROZEN", "BAKED GOODS", "REFRIG/FROZEN", "LIQUOR",
    "MISCELLANEOUS", "DAIRY", "WHOLE", "FOODS", "TARE", "SAVINGS",
    "REGULAR PRICE", "CARD PRICE", "CARD SAVINGS",
})

_store_meta_patterns = _any(
    r"^ST\s?#",
    r"\b(OP|TR|TE|TC|TERM|REG)\s?#",
    r"\bMGR\b",
    r"\bMANAGER\b",
    r"\bREGISTER\b",
    r"\bTERMINAL\b",
    r"\bCASHI[EIA]R",
    r"\bSURV|\bSURY",
    r"\b(FEED|FOOD) ?BACK\b",
    r"WAL[-\s]?MART",
    r"\bWHOLE FOODS\b",
    r"\bTARGET\b",
    r"^(FOOD CITY|SAFEWAY|FRY'?S|KROGER|COSTCO|ALDI|PUBLIX|H-?E-?B)\b",
    r"\bSTORE\b.*\bRECEIPT\b",
    r"\bSTORE (CONTACT|HOURS)\b",
    r"\bTHANK ?YOU\b",
    r"\bBAG REFUND\b",
    r"^ABN:",
    r"^REF ?#?:",
    r"\bINVOICE\b",
    r"\bTRANSACTION\b",
    r"\bLIMITED PARTNERSHIP\b",
)


def _is_store_meta(f: LineFeatures) -> bool:
    return f.upper in _STORE_SECTIONS or _store_meta_patterns(f)


_is_payment_or_total = _any(
    r"\bSUB\s?TOTAL\b",
    r"\bTOTAL\b",
    r"\bTAX\b",
    r"\bBALANCE\b",
    r"\bCHANGE\b",
    r"\bDEBIT\b",
    r"\bCREDIT\b",
    r"\bVISA\b",
    r"\bMASTER ?CARD\b",
    r"\bAMEX\b",
    r"\bTEND(ER|ERED)?\b",
    r"\bAPPROV(ED|AL)?\b",
    r"\bAUTH\b",
    r"\bAID:",
    r"\bACCOUNT ?#",
    r"\bNETWORK ID\b",
    r"\bAPPR CODE\b",
    r"\bPAY FROM\b",
    r"\bPAYMENT\b",
    r"\bCASH\b",
    r"^PURCHASE:",
    r"\bSIGNATURE\b",
)

_is_qty_only = _any(r"^\d+\s*(EA\.?|ES\.|E\.|CT|PK)(\s+\d{1,3})?$")

_is_weight_or_unit_price = _any(
    rf"^\d+(\.\d+)?\s*\.?\s*{_LBX}\s*(@.*)?$",
    rf"^@?\s*\$?\d+(\.\d+)?\s*/\s*{_LBX}\b",
    rf"\b\d+\s*{_LBX}\s*/\s*\$?\d+(\.\d{{2}})?\b",
    r"^@",
)

_is_deal_math = _any(
    r"^\d+\s*@\s*\d+\s*(FOR)?\s*\$?\d+(\.\d{2})?$",
    r"^\d+\s+FOR\s+\$?\d+(\.\d{2})?$",
    r"^\d+\s*/\s*\$?\d+(\.\d{2})?$",
    r"\b\d+\s*/\s*\$\d+(\.\d{2})?\b",
)


def _is_percent(f: LineFeatures) -> bool:
    return "%" in f.upper


def _is_numeric_or_symbols(f: LineFeatures) -> bool:
    return f.letters == 0


def _is_price_residue(f: LineFeatures) -> bool:
    return re.search(r"\b\d+\.\d{2}\b", f.upper) is not None and f.letters < 4


# ---------------------------------------------------------------------------
# Layers 4-6
# ---------------------------------------------------------------------------


def _is_digit_heavy(f: LineFeatures) -> bool:
    return f.digits >= 6 and f.letters < 3


def _is_item_with_barcode(f: LineFeatures) -> bool:
    return f.has_word and _LONG_DIGITS_RE.search(f.upper) is not None


def _has_enough_letters(f: LineFeatures) -> bool:
    return f.letters >= 4


RULES: tuple[NoiseRule, ...] = (
    NoiseRule("empty", "trivial", DROP, lambda f: not f.upper),
    NoiseRule("too_short", "trivial", DROP, lambda f: len(f.upper) <= 2),
    NoiseRule("promo", "trivial", DROP, _is_promo),
    NoiseRule("long_code", "code", DROP, _is_pure_code),
    NoiseRule("phone", "structural", DROP, _is_phone),
    NoiseRule("address", "structural", DROP, _is_address),
    NoiseRule("date_time", "structural", DROP, _is_date_time),
    NoiseRule("store_meta", "structural", DROP, _is_store_meta),
    NoiseRule("payment_total", "structural", DROP, _is_payment_or_total),
    NoiseRule("qty_only", "structural", DROP, _is_qty_only),
    NoiseRule("weight_price", "structural", DROP, _is_weight_or_unit_price),
    NoiseRule("deal_math", "structural", DROP, _is_deal_math),
    NoiseRule("percent", "structural", DROP, _is_percent),
    NoiseRule("numbers_only", "structural", DROP, _is_numeric_or_symbols),
    NoiseRule("price_only", "structural", DROP, _is_price_residue),
    NoiseRule("digit_heavy", "digits", DROP, _is_digit_heavy),
    NoiseRule("item_with_barcode", "override", KEEP, _is_item_with_barcode),
    NoiseRule("has_letters", "default", KEEP, _has_enough_letters),
)

_FALLBACK = LineVerdict(keep=False, rule="too_few_letters", layer="default")


def classify_line(line: str, rules: tuple[NoiseRule, ...] = RULES) -> LineVerdict:
    """Decide whether a single receipt line should be kept."""
    features = LineFeatures.of(line)
    for rule in rules:
        if rule.predicate(features):
            return LineVerdict(keep=rule.verdict == KEEP, rule=rule.name, layer=rule.layer)
    return _FALLBACK


def is_totals_start(line: str) -> bool:
    """True for the line that opens the totals section of a receipt."""
    upper = upper_for_checks(line)
    return (
        "SUBTOTAL" in upper
        or upper == "TOTAL"
        or upper.startswith("TOTAL ")
        or "BALANCE DUE" in upper
        or "AMOUNT DUE" in upper
    )
