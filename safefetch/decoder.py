"""
Lenient body decoding.

A body is decoded as JSON when it parses to a truthy value; anything else
(empty text, whitespace, malformed JSON, ``null``, ``0``, ``false``, ``""``)
falls back to ``{"transformedValue": <raw text>}``. Parse failures never
escape this module.
"""

import inspect
import json
from typing import Any, Tuple

import structlog

from .envelope import Envelope
from .errors import BodyReadError

logger = structlog.get_logger(__name__)

FALLBACK_KEY = 'transformedValue'


def _reject_constant(name: str):
    raise ValueError(f"Non-standard JSON constant: {name}")


def _is_truthy(value: Any) -> bool:
    """Truthiness of a decoded JSON value, where empty arrays and objects count as present."""
    if isinstance(value, (list, dict)):
        return True
    return bool(value)


def decode_body(text: str) -> Tuple[Any, bool]:
    """Decode a response body, returning ``(json_value, is_json)``."""
    try:
        parsed = json.loads(text, parse_constant=_reject_constant)
    except (ValueError, TypeError, RecursionError) as e:
        logger.debug("body_not_json", error=str(e), length=len(text or ''))
        parsed = None

    if _is_truthy(parsed):
        return parsed, True
    return {FALLBACK_KEY: text}, False


async def read_text(response: Any) -> str:
    """Read a raw response body as text.

    Raises:
        BodyReadError: If the response has no callable ``text`` accessor.
    """
    accessor = getattr(response, 'text', None)
    if not callable(accessor):
        raise BodyReadError("Response exposes no text accessor")

    text = accessor()
    if inspect.isawaitable(text):
        text = await text

    if isinstance(text, bytes):
        return text.decode('utf-8', errors='replace')
    if text is None:
        return ''
    return text


async def read_envelope(response: Any) -> Envelope:
    """Read and decode a response body into an Envelope."""
    text = await read_text(response)
    body, is_json = decode_body(text)
    return Envelope(
        json=body,
        text=text,
        is_json=is_json,
        ok=getattr(response, 'ok', False),
        status=getattr(response, 'status', 0),
        original_response=response,
    )
