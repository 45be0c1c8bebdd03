"""
Pull the hidden directive out of an assistant reply.

The conversational workflow appends a marker word followed by a JSON object to
replies that should trigger an action. The object is frequently pretty-printed
and sometimes loses its trailing braces, so extraction is best effort: anything
that cannot be recovered by balancing braces is treated as an ordinary reply.
"""

import json
import re
from typing import Any

import structlog
from pydantic import ValidationError

from app.config import settings
from app.schemas.directives import Directive

logger = structlog.get_logger("directive_extractor")

_WHITESPACE_RUN = re.compile(r"\s+")


def extract(reply: str | None, marker: str | None = None) -> dict[str, Any] | None:
    marker = marker or settings.directive_marker
    if not reply:
        return None
    index = reply.find(marker)
    if index == -1:
        return None

    span = capture_object(reply[index + len(marker) :])
    if span is None:
        logger.info("directive_marker_without_object")
        return None

    flattened = _WHITESPACE_RUN.sub(" ", span).strip()
    payload = _load_json(flattened)
    if payload is not None:
        return payload

    for candidate in _repair_candidates(flattened):
        repaired = balance_braces(candidate)
        if repaired == candidate:
            continue
        payload = _load_json(repaired)
        if payload is not None:
            logger.info("directive_repaired", added_braces=len(repaired) - len(candidate))
            return payload

    logger.warning("directive_unparseable", span=_truncate(flattened, 300))
    return None


def _repair_candidates(span: str) -> list[str]:
    # Trailing prose after a truncated object is only cut off when the whole span fails.
    candidates = [span]
    last_close = span.rfind("}")
    if last_close != -1 and last_close < len(span) - 1:
        candidates.append(span[: last_close + 1])
    return candidates


def capture_object(text: str) -> str | None:
    """
    Return the first brace-delimited span in ``text``.

    A closed object ends at its matching brace. An object that never closes runs
    to the end of the text so that :func:`balance_braces` can complete it.
    """
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escape = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escape:
                escape = False
                continue
            if char == "\\":
                escape = True
                continue
            if char == "\"":
                in_string = False
            continue
        if char == "\"":
            in_string = True
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return text[start:].rstrip()


def balance_braces(span: str) -> str:
    """Append the closing braces ``span`` is short of. Only unmatched ``{`` are fixed."""
    missing = span.count("{") - span.count("}")
    if missing <= 0:
        return span
    return span + "}" * missing


def parse_directive(body: dict[str, Any] | None) -> Directive | None:
    if not body:
        return None
    try:
        return Directive.model_validate(body)
    except ValidationError:
        logger.info("directive_unrecognized", action=body.get("action"))
        return None


def extract_directive(reply: str | None) -> Directive | None:
    return parse_directive(extract(reply))


def _load_json(text: str | None) -> dict[str, Any] | None:
    if not text:
        return None
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return None
    return payload if isinstance(payload, dict) else None


def _truncate(text: str, length: int) -> str:
    return text if len(text) <= length else f"{text[:length]}..."
