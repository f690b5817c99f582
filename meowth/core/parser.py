"""Tolerant extraction of the decision object from free-form engine text.

Stage one (``find_json_span``) locates the first balanced ``{...}`` span,
skipping braces that appear inside JSON strings. Stage two
(``decode_decision``) strictly decodes that span into a ``Decision``.
"""
import json
from typing import Optional

from pydantic import BaseModel, ValidationError, field_validator

VALID_ACTIONS = ("buy", "sell", "skip")


class Decision(BaseModel):
    action: str
    pair: str = ""
    reason: str = ""
    confidence: int = 0
    thought: Optional[str] = None
    quip: Optional[str] = None
    mood: Optional[str] = None

    @field_validator("action", mode="before")
    @classmethod
    def _normalize_action(cls, v):
        return str(v).strip().lower()

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v):
        try:
            value = int(float(v))
        except (TypeError, ValueError, OverflowError):
            return 0
        return max(0, min(100, value))

    @field_validator("pair", "reason", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else str(v)

    @property
    def is_trade(self) -> bool:
        return self.action in ("buy", "sell")


def find_json_span(text: str) -> Optional[str]:
    """Return the first balanced-brace span in ``text``, or None."""
    if not text:
        return None
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        # Unbalanced from this brace; try the next opening brace
        start = text.find("{", start + 1)
    return None


def decode_decision(span: str) -> Optional[Decision]:
    """Strictly decode a JSON object into a Decision. None on any failure."""
    try:
        data = json.loads(span)
    except (json.JSONDecodeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    try:
        return Decision.model_validate(data)
    except ValidationError:
        return None


def parse_decision(text: str) -> Optional[Decision]:
    span = find_json_span(text)
    if span is None:
        return None
    return decode_decision(span)
