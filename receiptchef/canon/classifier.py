"""Batch canonicalization of receipt lines.

Cheap deterministic checks weed out obvious non-grocery text first; the rest
goes to the LLM backend as a single batch.  The reply must satisfy the row
contract exactly, otherwise the whole batch falls back to ``unknown``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Sequence

import pydantic

from ..errors import ClassifierError, ClassifierResponseError, ClassifierTimeoutError
from ..llm import ClassifierBackend
from .models import CanonResult, clamp_confidence, fallback_result, not_item_result, now_ms
from .schemas import LLMReply

logger = logging.getLogger(__name__)

# Non-grocery retail words (apparel, stationery, electronics, toys)
_NON_GROCERY_WORDS = [
    "ruck", "rucksack", "backpack", "notebook", "binder", "pen", "pencil",
    "folder", "paper clip", "staple", "tape", "scissors", "marker", "crayon",
    "toy", "board game", "shirt", "pants", "shoe", "sock", "hat", "jacket",
    "headphones", "earbuds", "charger", "cable", "battery", "batteries",
    "flashlight", "phone case", "gift card",
]
_NON_GROCERY_RE = re.compile(
    r"\b(" + "|".join(re.escape(w) for w in _NON_GROCERY_WORDS) + r")s?\b"
)
_UNIT_WORDS_RE = re.compile(r"\b(lb|lbs|oz|ea|each)\b")


@dataclass(frozen=True)
class BatchRow:
    key: str
    text: str


@dataclass
class ClassificationOutcome:
    results: list[CanonResult]
    llm_called: bool = False
    error: ClassifierError | None = None
    prefiltered: int = 0


def is_definitely_non_grocery(text: str) -> bool:
    """Deterministic prefilter: True for text that is clearly not a pantry item."""
    s = text.strip().lower()
    if not s:
        return True

    # numeric-only / promo-ish
    if re.fullmatch(r"\d+(\.\d+)?", s):
        return True
    if re.match(r"(for|save|deal)\b", s):
        return True
    if ("$" in s or _UNIT_WORDS_RE.search(s)) and not re.search(
        r"[a-z]", _UNIT_WORDS_RE.sub("", s)
    ):
        return True

    return _NON_GROCERY_RE.search(s) is not None


def build_prompt(rows: Sequence[BatchRow]) -> str:
    payload = json.dumps([{"key": r.key, "text": r.text} for r in rows], indent=2)
    return f"""\
You are a receipt line-item canonicalizer for a pantry/kitchen app.

Return ONLY valid JSON. No markdown, no backticks, no extra text.

Output MUST match this shape exactly:

{{
  "rows": [
    {{
      "key": string,
      "canonicalName": string,
      "status": "item" | "not_item" | "unknown",
      "kind": "food" | "household" | "other",
      "ingredientType": "ingredient" | "product" | "ambiguous",
      "confidence": number between 0 and 1
    }}
  ]
}}

status rules:
- status="item" if the line refers to a purchasable product (food OR household/personal care OR general merchandise).
- status="not_item" if it is NOT a product name: prices, weights/unit prices, totals, taxes, discounts, coupons,
  loyalty lines, tender/payment, change, store address/phone, cashier, survey, barcodes/long numeric codes.
- status="unknown" only if you truly cannot tell whether it is a product name or noise.

kind rules (only meaningful when status="item"):
- kind="food" for edible/drinkable items.
- kind="household" for household, personal care, cleaning, paper goods, OTC meds/supplements.
- kind="other" for general merchandise (electronics, apparel, toys, tools, stationery, etc.).
If status!="item", set kind="other".

ingredientType rules (only meaningful when status="item" AND kind="food"):
- "ingredient" for raw ingredients/staples (produce, raw meats, eggs, milk, flour, rice, beans, spices).
- "product" for packaged/prepared foods (snacks, frozen meals, bread, branded items).
- "ambiguous" only if truly unclear.
If status!="item" OR kind!="food", set ingredientType="product".

canonicalName rules:
- If status="item": Title Case, cleaned, human-friendly. Expand common abbreviations when obvious.
- If status="not_item": canonicalName MUST be "".
- Remove store prefixes, promo tokens, prices and weights.
- Preserve each "key" EXACTLY as provided.
- rows.length MUST equal the number of input rows.
- Do not add extra fields.

confidence rules:
  0.95-1.0 = obvious
  0.70-0.94 = likely but abbreviated/noisy
  0.40-0.69 = uncertain
  0.10-0.39 = very unsure
  0.00-0.09 = basically guess
Avoid returning 1.0 unless it is extremely clear.

Input rows JSON:
{payload}
"""


def _load_json(raw: str) -> object:
    cleaned = raw.strip()
    # Strip markdown fences if present
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start >= 0 and end > start:
            return json.loads(cleaned[start:end + 1])
        raise


def validate_reply(
    rows_in: Sequence[BatchRow], raw: str
) -> tuple[list[CanonResult] | None, ClassifierResponseError | None]:
    """Check an LLM reply against the row contract.

    Any defect rejects the whole reply: there is no partial acceptance.
    """
    if not isinstance(raw, str):
        return None, ClassifierResponseError(f"reply is not text: {type(raw).__name__}")

    try:
        data = _load_json(raw)
    except json.JSONDecodeError:
        return None, ClassifierResponseError(f"non-JSON reply: {raw[:200]!r}")

    try:
        reply = LLMReply.model_validate(data)
    except pydantic.ValidationError as e:
        return None, ClassifierResponseError(f"reply does not match row contract: {e}")

    if len(reply.rows) != len(rows_in):
        return None, ClassifierResponseError(
            f"row count mismatch: got {len(reply.rows)}, expected {len(rows_in)}"
        )

    known = {r.key for r in rows_in}
    for row in reply.rows:
        if row.key not in known:
            return None, ClassifierResponseError(f"unknown key in reply: {row.key!r}")

    updated_at = now_ms()
    return [
        CanonResult(
            key=row.key,
            canonical_name=row.canonical_name,
            status=row.status,
            kind=row.kind,
            ingredient_type=row.ingredient_type,
            confidence=clamp_confidence(row.confidence),
            updated_at=updated_at,
            source="llm",
        )
        for row in reply.rows
    ], None


class CanonicalizationClassifier:
    """Prefilter plus one deadline-bound LLM batch per call."""

    def __init__(self, backend: ClassifierBackend, timeout_seconds: float = 60.0) -> None:
        self._backend = backend
        self._timeout = timeout_seconds

    async def call_batch(
        self, rows: Sequence[BatchRow]
    ) -> tuple[list[CanonResult] | None, ClassifierError | None]:
        """Send *rows* to the backend and validate the reply."""
        prompt = build_prompt(rows)
        try:
            raw = await asyncio.wait_for(self._backend.complete(prompt), self._timeout)
        except asyncio.TimeoutError:
            return None, ClassifierTimeoutError(
                f"{self._backend.name} batch timed out after {self._timeout}s"
            )
        except Exception as e:  # any transport failure becomes a fallback
            return None, ClassifierResponseError(f"{self._backend.name} call failed: {e!r}")

        return validate_reply(rows, raw)

    async def classify(self, rows: Sequence[BatchRow]) -> ClassificationOutcome:
        """Classify *rows*; one result per input row, in input order.

        Never raises: classifier failures turn every LLM-bound row of the
        batch into an ``unknown`` placeholder.
        """
        by_key: dict[str, CanonResult] = {}
        to_llm: list[BatchRow] = []
        for row in rows:
            if is_definitely_non_grocery(row.text):
                by_key[row.key] = not_item_result(row.key)
            else:
                to_llm.append(row)

        outcome = ClassificationOutcome(results=[], prefiltered=len(by_key))

        if to_llm:
            outcome.llm_called = True
            fresh, error = await self.call_batch(to_llm)
            if error is not None:
                logger.error(
                    "Canonicalization batch of %d rows failed: %s", len(to_llm), error
                )
                outcome.error = error
                fresh = [fallback_result(r.key, r.text) for r in to_llm]
            for r in fresh:
                by_key[r.key] = r

        for row in rows:
            hit = by_key.get(row.key)
            if hit is None:
                logger.warning("No classification for key %r; using placeholder", row.key)
                hit = fallback_result(row.key, row.text)
            outcome.results.append(hit)
        return outcome
