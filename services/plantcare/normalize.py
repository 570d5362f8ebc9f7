"""Response normalization into ``PredictionResult``.

Each field is extracted by an ordered list of pure rules; the first rule
returning a value wins. Rules never raise on unexpected shapes.
"""

import json
import math
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

import httpx

from plantcare.models import PredictionResult

TEXT_MESSAGE_LIMIT = 500

Rule = Callable[[Any], Optional[Any]]


@dataclass
class ParsedBody:
    """A 2xx body: decoded JSON, or the raw text when it is not JSON."""
    is_json: bool
    data: Any

    @property
    def degraded(self) -> bool:
        return not self.is_json


def parse_body(response: httpx.Response) -> ParsedBody:
    text = response.text
    try:
        return ParsedBody(True, json.loads(text))
    except ValueError:
        return ParsedBody(False, text)


def truthy_field(name: str) -> Rule:
    """Value under ``name`` when the body is an object and the value is truthy."""
    def rule(body: Any) -> Optional[Any]:
        if isinstance(body, dict):
            return body.get(name) or None
        return None
    rule.__name__ = f"truthy_field_{name}"
    return rule


def present_field(name: str) -> Rule:
    """Value under ``name`` when present and not null."""
    def rule(body: Any) -> Optional[Any]:
        if isinstance(body, dict):
            return body.get(name)
        return None
    rule.__name__ = f"present_field_{name}"
    return rule


def bare_string(body: Any) -> Optional[str]:
    if isinstance(body, str) and body:
        return body
    return None


STATUS_RULES: List[Rule] = [
    truthy_field("status"),
    truthy_field("label"),
    truthy_field("prediction"),
    bare_string,
]

CONFIDENCE_RULES: List[Rule] = [
    present_field("overall_confidence"),
    present_field("confidence"),
    present_field("score"),
]

MESSAGE_RULES: List[Rule] = [
    truthy_field("message"),
    truthy_field("info"),
]


def first_match(rules: List[Rule], body: Any) -> Optional[Any]:
    for rule in rules:
        value = rule(body)
        if value is not None:
            return value
    return None


def coerce_confidence(value: Any) -> float:
    """Float in [0, 1]; anything unparseable becomes 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return min(max(number, 0.0), 1.0)


def normalize(parsed: ParsedBody, encoding: Optional[str] = None) -> PredictionResult:
    """Turn a successful response body into a ``PredictionResult``."""
    if parsed.degraded:
        text = parsed.data or ""
        return PredictionResult(
            success=True,
            status="OK",
            confidence=0.0,
            raw_response=parsed.data,
            message=text[:TEXT_MESSAGE_LIMIT] or "OK",
            encoding=encoding,
        )

    body = parsed.data
    status = first_match(STATUS_RULES, body)
    message = first_match(MESSAGE_RULES, body)
    return PredictionResult(
        success=True,
        status=str(status) if status is not None else "OK",
        confidence=coerce_confidence(first_match(CONFIDENCE_RULES, body)),
        raw_response=body,
        message=str(message) if message is not None else "OK",
        encoding=encoding,
    )
