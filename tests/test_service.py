"""Tests for request-level canonicalization."""

import pytest

from receiptchef.canon.classifier import CanonicalizationClassifier
from receiptchef.canon.guards import DailyRateLimiter, InMemoryCounterStore
from receiptchef.canon.keys import make_key
from receiptchef.canon.models import CanonResult
from receiptchef.canon.service import CanonicalizeService, is_cacheable
from receiptchef.config import GuardsConfig
from receiptchef.db import MemoryCanonCache
from receiptchef.errors import CacheReadError, CacheWriteError

from conftest import FakeBackend, item_row

DAY = "2026-01-01"
DEVICE = "device-123"


def _payload(*texts, device_id=DEVICE):
    return {
        "deviceId": device_id,
        "items": [{"id": str(i), "text": t} for i, t in enumerate(texts, 1)],
    }


def _service(backend=None, cache=None, store=None, **guards):
    backend = backend or FakeBackend()
    cache = cache if cache is not None else MemoryCanonCache()
    service = CanonicalizeService(
        cache=cache,
        classifier=CanonicalizationClassifier(backend, timeout_seconds=1.0),
        limiter=DailyRateLimiter(store=store, today=lambda: DAY),
        guards=GuardsConfig(**guards),
    )
    return service, backend, cache


def _cached(text, **overrides):
    data = dict(
        key=make_key(text),
        canonical_name=text.title(),
        status="item",
        kind="food",
        ingredient_type="ingredient",
        confidence=0.95,
        updated_at=1,
        source="llm",
    )
    data.update(overrides)
    return CanonResult(**data)


class _BrokenReadCache(MemoryCanonCache):
    def get_many(self, keys):
        raise CacheReadError("database is locked")


class _BrokenWriteCache(MemoryCanonCache):
    def upsert_many(self, rows):
        raise CacheWriteError("disk full")


class TestAdmission:
    @pytest.mark.parametrize(
        "status, confidence, admitted",
        [
            ("item", 0.5, False),
            ("item", 0.74, False),
            ("item", 0.75, True),
            ("not_item", 0.1, True),
            ("unknown", 0.89, False),
            ("unknown", 0.9, True),
            ("unknown", 0.0, False),
        ],
    )
    def test_boundaries(self, status, confidence, admitted):
        assert is_cacheable(_cached("Milk", status=status, confidence=confidence)) is admitted


class TestCanonicalize:
    @pytest.mark.asyncio
    async def test_fresh_classification(self):
        service, backend, cache = _service()
        response, error = await service.handle(_payload("Bananas", "Whole Milk"))

        assert error is None
        assert response.ok is True
        assert response.llm_used is True
        assert response.llm_remaining == 29
        assert [m.id for m in response.merged] == ["1", "2"]
        assert [m.result.source for m in response.merged] == ["llm", "llm"]
        assert len(backend.calls) == 1
        assert len(cache) == 2

    @pytest.mark.asyncio
    async def test_duplicate_texts_classified_once(self):
        service, backend, _ = _service()
        response, _ = await service.handle(_payload("Milk", "MILK ", "Bread"))

        assert backend.calls == [
            [
                {"key": make_key("Milk"), "text": "Milk"},
                {"key": make_key("Bread"), "text": "Bread"},
            ]
        ]
        assert len(response.merged) == 3
        assert [m.text for m in response.merged] == ["Milk", "MILK ", "Bread"]
        assert response.merged[0].result == response.merged[1].result

    @pytest.mark.asyncio
    async def test_cache_only_request_skips_guards_and_llm(self):
        store = InMemoryCounterStore()
        cache = MemoryCanonCache()
        cache.upsert_many([_cached("Milk")])
        service, backend, _ = _service(cache=cache, store=store)

        response, _ = await service.handle(_payload("milk"))

        assert backend.calls == []
        assert response.llm_used is False
        assert response.llm_remaining is None
        assert response.merged[0].result.source == "cache"
        assert store.get(DEVICE) is None

    @pytest.mark.asyncio
    async def test_second_request_served_from_cache(self):
        service, backend, _ = _service()
        await service.handle(_payload("Bananas"))
        response, _ = await service.handle(_payload("BANANAS"))

        assert len(backend.calls) == 1
        assert response.merged[0].result.source == "cache"

    @pytest.mark.asyncio
    async def test_rate_limited_device_gets_null_results(self):
        service, backend, _ = _service(max_per_day=1)
        service._limiter.check(DEVICE, 1)

        response, error = await service.handle(_payload("Bananas"))

        assert error is None
        assert response.llm_used is False
        assert response.llm_remaining == 0
        assert response.merged[0].result is None
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_rate_limit_counts_requests_not_items(self):
        service, backend, _ = _service(max_per_day=2)
        response, _ = await service.handle(_payload("Apples", "Pears", "Plums", "Kiwis"))
        assert response.llm_remaining == 1

        response, _ = await service.handle(_payload("Grapes"))
        assert response.llm_remaining == 0
        assert response.llm_used is True

        response, _ = await service.handle(_payload("Lemons"))
        assert response.llm_used is False
        assert response.merged[0].result is None

    @pytest.mark.asyncio
    async def test_rate_limit_mixed_cached_and_uncached(self):
        cache = MemoryCanonCache()
        cache.upsert_many([_cached("Milk")])
        service, _, _ = _service(cache=cache, max_per_day=1)
        service._limiter.check(DEVICE, 1)

        response, _ = await service.handle(_payload("Milk", "Bread"))

        assert response.merged[0].result.source == "cache"
        assert response.merged[1].result is None

    @pytest.mark.asyncio
    async def test_item_budget_excludes_the_tail(self):
        service, backend, cache = _service(max_items=2)
        response, _ = await service.handle(_payload("Apples", "Pears", "Plums"))

        assert [r["text"] for r in backend.calls[0]] == ["Apples", "Pears"]
        assert response.merged[2].result is None
        assert len(cache) == 2

    @pytest.mark.asyncio
    async def test_char_budget_excludes_the_tail(self):
        service, backend, _ = _service(max_chars=11)
        response, _ = await service.handle(_payload("Apples", "Pears", "Plums"))

        assert [r["text"] for r in backend.calls[0]] == ["Apples", "Pears"]
        assert response.merged[2].result is None

    @pytest.mark.asyncio
    async def test_nothing_fits_budget(self):
        service, backend, _ = _service(max_chars=3)
        response, _ = await service.handle(_payload("Apples"))

        assert backend.calls == []
        assert response.llm_used is False
        assert response.llm_remaining == 29
        assert response.merged[0].result is None

    @pytest.mark.asyncio
    async def test_only_confident_results_are_cached(self):
        def reply(rows):
            confidences = {"Apples": 0.5, "Pears": 0.75}
            out = []
            for r in rows:
                if r["text"] == "Coupon Line":
                    out.append(item_row(r, status="not_item", canonicalName="", confidence=0.1))
                else:
                    out.append(item_row(r, confidence=confidences[r["text"]]))
            return {"rows": out}

        service, _, cache = _service(FakeBackend(reply))
        response, _ = await service.handle(_payload("Apples", "Pears", "Coupon Line"))

        assert all(m.result is not None for m in response.merged)
        stored = cache.get_many([make_key(t) for t in ("Apples", "Pears", "Coupon Line")])
        assert set(stored) == {make_key("Pears"), make_key("Coupon Line")}

    @pytest.mark.asyncio
    async def test_fallback_results_are_returned_but_not_cached(self):
        service, _, cache = _service(FakeBackend(exc=RuntimeError("boom")))
        response, error = await service.handle(_payload("Apples", "Pears", "Plums"))

        assert error is None
        assert response.llm_used is True
        for m in response.merged:
            assert m.result.status == "unknown"
            assert m.result.confidence == 0.0
            assert m.result.source == "none"
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_prefiltered_text_is_cached_as_not_item(self):
        service, backend, cache = _service()
        response, _ = await service.handle(_payload("USB Cable"))

        assert backend.calls == []
        assert response.llm_used is False
        assert response.merged[0].result.status == "not_item"
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_cache_write_failure_is_swallowed(self):
        service, _, _ = _service(cache=_BrokenWriteCache())
        response, error = await service.handle(_payload("Bananas"))

        assert error is None
        assert response.merged[0].result.source == "llm"

    @pytest.mark.asyncio
    async def test_cache_read_failure_propagates(self):
        service, backend, _ = _service(cache=_BrokenReadCache())
        with pytest.raises(CacheReadError):
            await service.handle(_payload("Bananas"))
        assert backend.calls == []


class TestValidation:
    @pytest.mark.parametrize(
        "payload",
        [
            None,
            "not an object",
            {"deviceId": "abc", "items": [{"id": "1", "text": "Milk"}]},
            {"deviceId": DEVICE, "items": []},
            {"deviceId": DEVICE},
            {"deviceId": DEVICE, "items": [{"id": "1"}]},
            {"deviceId": DEVICE, "items": [{"id": "1", "text": 5}]},
        ],
    )
    @pytest.mark.asyncio
    async def test_bad_payload_has_no_side_effects(self, payload):
        store = InMemoryCounterStore()
        service, backend, cache = _service(store=store)

        response, error = await service.handle(payload)

        assert response is None
        assert error is not None
        assert error.details["fieldErrors"]
        assert backend.calls == []
        assert store.get(DEVICE) is None
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_wire_shape(self):
        service, _, _ = _service()
        response, _ = await service.handle(_payload("Bananas"))
        data = response.to_dict()

        assert set(data) == {"ok", "llmUsed", "llmRemaining", "merged"}
        item = data["merged"][0]
        assert item["id"] == "1"
        assert item["key"] == make_key("Bananas")
        assert item["result"]["canonicalName"] == "Bananas"
        assert item["result"]["ingredientType"] == "ingredient"
