"""Recombine cached and freshly classified results in request order."""

from __future__ import annotations

from typing import Mapping, Sequence

from .models import CanonResult
from .schemas import MergedItem


def merge_results(
    items: Sequence[tuple[str, str, str]],
    fresh: Mapping[str, CanonResult],
    cached: Mapping[str, CanonResult],
) -> list[MergedItem]:
    """Pick one result per ``(id, text, key)`` item.

    A result classified during this request wins over a cache hit, and a
    cache hit wins over nothing.  ``None`` means the item was neither cached
    nor classified (for example because the device hit its daily limit).
    """
    merged = []
    for item_id, text, key in items:
        hit = fresh.get(key)
        if hit is None:
            hit = cached.get(key)
        merged.append(MergedItem(id=item_id, text=text, key=key, result=hit))
    return merged
