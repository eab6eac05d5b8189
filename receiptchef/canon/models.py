"""Classification result types."""

from __future__ import annotations

import time
from dataclasses import dataclass, replace

STATUSES = frozenset({"item", "not_item", "unknown"})
KINDS = frozenset({"food", "household", "other"})
INGREDIENT_TYPES = frozenset({"ingredient", "product", "ambiguous"})
SOURCES = frozenset({"cache", "llm", "none"})


def now_ms() -> int:
    return int(time.time() * 1000)


def clamp_confidence(value: object) -> float:
    """Coerce *value* to a float in ``[0, 1]``; junk becomes 0."""
    try:
        f = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if f != f:  # NaN
        return 0.0
    return max(0.0, min(1.0, f))


@dataclass
class CanonResult:
    key: str
    canonical_name: str
    status: str  # item | not_item | unknown
    kind: str  # food | household | other
    ingredient_type: str  # ingredient | product | ambiguous
    confidence: float  # 0.0 to 1.0
    updated_at: int  # epoch milliseconds
    source: str  # cache | llm | none

    def __post_init__(self) -> None:
        if self.status not in STATUSES:
            raise ValueError(f"invalid status: {self.status!r}")
        if self.kind not in KINDS:
            raise ValueError(f"invalid kind: {self.kind!r}")
        if self.ingredient_type not in INGREDIENT_TYPES:
            raise ValueError(f"invalid ingredient_type: {self.ingredient_type!r}")
        if self.source not in SOURCES:
            raise ValueError(f"invalid source: {self.source!r}")
        self.confidence = clamp_confidence(self.confidence)

    def with_source(self, source: str) -> CanonResult:
        return replace(self, source=source)

    def to_dict(self) -> dict:
        """Wire form used in API responses."""
        return {
            "key": self.key,
            "canonicalName": self.canonical_name,
            "status": self.status,
            "kind": self.kind,
            "ingredientType": self.ingredient_type,
            "confidence": self.confidence,
            "updatedAt": self.updated_at,
            "source": self.source,
        }


def fallback_result(key: str, text: str) -> CanonResult:
    """Placeholder for rows the classifier could not answer."""
    return CanonResult(
        key=key,
        canonical_name=text,
        status="unknown",
        kind="other",
        ingredient_type="ambiguous",
        confidence=0.0,
        updated_at=now_ms(),
        source="none",
    )


def not_item_result(key: str) -> CanonResult:
    """Result for text the prefilter rejects without asking the LLM."""
    return CanonResult(
        key=key,
        canonical_name="",
        status="not_item",
        kind="other",
        ingredient_type="ambiguous",
        confidence=0.95,
        updated_at=now_ms(),
        source="none",
    )
