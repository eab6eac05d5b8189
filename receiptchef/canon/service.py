"""Request-level orchestration: keys → cache → guards → classifier → merge."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Iterable

from ..config import GuardsConfig
from ..db.store import CacheStore
from ..errors import CacheWriteError, ValidationError
from .classifier import BatchRow, CanonicalizationClassifier
from .guards import DailyRateLimiter, enforce_budget
from .keys import make_key
from .merge import merge_results
from .models import CanonResult
from .schemas import CanonicalizeRequest, CanonicalizeResponse, parse_request

if TYPE_CHECKING:
    from ..config import ReceiptChefConfig

logger = logging.getLogger(__name__)

ADMIT_ITEM_CONFIDENCE = 0.75
ADMIT_UNKNOWN_CONFIDENCE = 0.9


def is_cacheable(result: CanonResult) -> bool:
    """Admission policy: keep low-confidence guesses out of the cache."""
    if result.status == "not_item":
        return True
    if result.status == "item":
        return result.confidence >= ADMIT_ITEM_CONFIDENCE
    return result.confidence >= ADMIT_UNKNOWN_CONFIDENCE


class CanonicalizeService:
    """Classifies candidate item texts, using the cache before the LLM."""

    def __init__(
        self,
        cache: CacheStore,
        classifier: CanonicalizationClassifier,
        limiter: DailyRateLimiter | None = None,
        guards: GuardsConfig | None = None,
    ) -> None:
        self._cache = cache
        self._classifier = classifier
        self._limiter = limiter if limiter is not None else DailyRateLimiter()
        self._guards = guards if guards is not None else GuardsConfig()

    @classmethod
    def from_config(cls, config: ReceiptChefConfig) -> CanonicalizeService:
        from ..db.canon_cache import SQLiteCanonCache
        from ..llm import create_backend

        return cls(
            cache=SQLiteCanonCache(config.database.path),
            classifier=CanonicalizationClassifier(
                create_backend(config), timeout_seconds=config.llm.timeout_seconds
            ),
            guards=config.guards,
        )

    @property
    def cache(self) -> CacheStore:
        return self._cache

    async def handle(
        self, payload: object
    ) -> tuple[CanonicalizeResponse | None, ValidationError | None]:
        """Validate *payload* and canonicalize it.

        A malformed payload is returned as an error value before any cache or
        classifier work happens.

        Raises:
            CacheReadError: If the cache lookup fails.
        """
        request, error = parse_request(payload)
        if error is not None:
            return None, error
        return await self.canonicalize(request), None

    async def canonicalize(self, request: CanonicalizeRequest) -> CanonicalizeResponse:
        device_id = request.device_id
        items = [(it.id, it.text, make_key(it.text)) for it in request.items]
        logger.info("canonicalize called: device=%s items=%d", device_id, len(items))

        # 1) cache lookup
        keys = list(dict.fromkeys(key for _, _, key in items))
        cached = self._cache.get_many(keys)

        # 2) uncached keys with their first-occurrence text
        uncached: list[BatchRow] = []
        seen: set[str] = set()
        for _, text, key in items:
            if key in seen:
                continue
            seen.add(key)
            if key not in cached:
                uncached.append(BatchRow(key=key, text=text))
        logger.info(
            "cache stats: total=%d cached=%d uncached=%d",
            len(keys), len(cached), len(uncached),
        )

        # 3) guards + classifier
        llm_used = False
        llm_remaining: int | None = None
        fresh: dict[str, CanonResult] = {}

        if uncached:
            decision = self._limiter.check(device_id, self._guards.max_per_day)
            llm_remaining = decision.remaining
            logger.info("guards: rate_limit_ok=%s remaining=%d", decision.ok, decision.remaining)

            if decision.ok:
                trimmed, chars = enforce_budget(
                    uncached,
                    self._guards.max_items or math.inf,
                    self._guards.max_chars,
                )
                logger.info(
                    "budget: %d of %d rows sent (%d chars)", len(trimmed), len(uncached), chars
                )
                if trimmed:
                    outcome = await self._classifier.classify(trimmed)
                    llm_used = outcome.llm_called
                    fresh = {r.key: r for r in outcome.results}
                    self._write_back(outcome.results)
            else:
                logger.info("rate limited; skipping classifier for device %s", device_id)

        # 4) merge in request order
        return CanonicalizeResponse(
            ok=True,
            llm_used=llm_used,
            llm_remaining=llm_remaining,
            merged=merge_results(items, fresh, cached),
        )

    def _write_back(self, results: Iterable[CanonResult]) -> None:
        to_cache = [r for r in results if is_cacheable(r)]
        if not to_cache:
            return
        try:
            self._cache.upsert_many(to_cache)
        except CacheWriteError:
            logger.exception("cache write failed for %d rows", len(to_cache))
            return
        logger.info("cached %d rows", len(to_cache))
