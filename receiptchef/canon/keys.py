"""Versioned cache keys for classifiable receipt text."""

from __future__ import annotations

import re
import unicodedata

# Bump whenever prompt or classification rules change; old cache rows then
# simply stop matching.
PIPELINE_VERSION = "canon-v1"


def normalize_key(text: str) -> str:
    """Casefold, strip diacritics, collapse punctuation and whitespace."""
    s = unicodedata.normalize("NFKD", text.casefold())
    s = s.encode("ascii", "ignore").decode("ascii")
    s = re.sub(r"[^a-z0-9\s]", " ", s)
    return re.sub(r"\s+", " ", s).strip()


def make_key(text: str, version: str = PIPELINE_VERSION) -> str:
    return f"{version}:{normalize_key(text)}"
