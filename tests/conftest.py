"""Shared fixtures: a scripted LLM backend and reply builders."""

import asyncio
import json

import pytest

from receiptchef.llm import ClassifierBackend


def rows_from_prompt(prompt: str) -> list[dict]:
    """Recover the ``{key, text}`` rows embedded in a canonicalize prompt."""
    return json.loads(prompt.split("Input rows JSON:\n", 1)[1])


def item_row(row: dict, **overrides) -> dict:
    out = {
        "key": row["key"],
        "canonicalName": row["text"].title(),
        "status": "item",
        "kind": "food",
        "ingredientType": "ingredient",
        "confidence": 0.9,
    }
    out.update(overrides)
    return out


class FakeBackend(ClassifierBackend):
    """Backend whose reply is computed from the prompt rows.

    ``reply`` is either a string returned verbatim or a callable taking the
    list of input rows and returning a JSON-serializable object.
    """

    name = "fake"

    def __init__(self, reply=None, exc: Exception | None = None, delay: float = 0.0):
        self.reply = reply if reply is not None else (lambda rows: {"rows": [item_row(r) for r in rows]})
        self.exc = exc
        self.delay = delay
        self.calls: list[list[dict]] = []

    async def complete(self, prompt: str) -> str:
        rows = rows_from_prompt(prompt)
        self.calls.append(rows)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        if isinstance(self.reply, str):
            return self.reply
        return json.dumps(self.reply(rows))


@pytest.fixture
def fake_backend():
    """Factory for FakeBackend instances."""
    return FakeBackend


@pytest.fixture
def item_row_builder():
    return item_row
