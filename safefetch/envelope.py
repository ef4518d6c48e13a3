"""
The normalized result every request resolves to.
"""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class Envelope:
    """A single, immutable request outcome.

    Failures are represented as data: callers branch on ``ok``, ``status``
    and ``is_json`` rather than catching exceptions.
    """

    json: Any
    text: str
    is_json: bool
    ok: bool
    status: int
    original_response: Any = None

    def as_dict(self) -> Dict[str, Any]:
        """Return a JSON-serializable view, without the raw response."""
        return {
            'json': self.json,
            'text': self.text,
            'isJson': self.is_json,
            'ok': self.ok,
            'status': self.status,
        }


# Shared by every call that ends without a trustworthy server response
# (timeout, transport failure, flagged server error, unreadable body).
SERVER_ERROR_RESPONSE = Envelope(
    json=None,
    text='',
    is_json=False,
    ok=False,
    status=503,
    original_response=None,
)
