"""Wire schemas: the canonicalize request body and the LLM row contract."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated, Literal

import pydantic
from pydantic import BaseModel, ConfigDict, Field, StrictStr

from ..errors import ValidationError
from .models import CanonResult

# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------


class RequestItem(BaseModel):
    id: StrictStr = Field(..., min_length=1)
    text: StrictStr = Field(..., min_length=1)


class CanonicalizeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    device_id: StrictStr = Field(..., alias="deviceId", min_length=6)
    items: list[RequestItem] = Field(..., min_length=1)


def parse_request(
    payload: object,
) -> tuple[CanonicalizeRequest | None, ValidationError | None]:
    """Validate a request body.

    Returns ``(request, None)`` on success and ``(None, error)`` otherwise;
    nothing downstream runs for a rejected request.
    """
    try:
        return CanonicalizeRequest.model_validate(payload), None
    except pydantic.ValidationError as e:
        details = {
            "fieldErrors": [
                {
                    "loc": [str(p) for p in err["loc"]],
                    "msg": err["msg"],
                    "type": err["type"],
                }
                for err in e.errors(include_url=False)
            ]
        }
        return None, ValidationError("bad_request", details)


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------


@dataclass
class MergedItem:
    id: str
    text: str
    key: str
    result: CanonResult | None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "key": self.key,
            "result": self.result.to_dict() if self.result is not None else None,
        }


@dataclass
class CanonicalizeResponse:
    ok: bool
    llm_used: bool
    llm_remaining: int | None
    merged: list[MergedItem] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "llmUsed": self.llm_used,
            "llmRemaining": self.llm_remaining,
            "merged": [m.to_dict() for m in self.merged],
        }


# ---------------------------------------------------------------------------
# LLM output contract
# ---------------------------------------------------------------------------

Confidence = Annotated[float, Field(ge=0.0, le=1.0, allow_inf_nan=False, strict=True)]


class LLMRow(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key: StrictStr
    canonical_name: StrictStr = Field(..., alias="canonicalName")
    status: Literal["item", "not_item", "unknown"]
    kind: Literal["food", "household", "other"]
    ingredient_type: Literal["ingredient", "product", "ambiguous"] = Field(
        ..., alias="ingredientType"
    )
    confidence: Confidence


class LLMReply(BaseModel):
    rows: list[LLMRow]
