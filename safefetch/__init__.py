"""safefetch: HTTP requests that always resolve to a normalized Envelope."""

from .classifier import is_server_error, status_classifier
from .client import ResilientClient, Settlement, request
from .decoder import decode_body, read_envelope
from .envelope import Envelope, SERVER_ERROR_RESPONSE
from .errors import BodyReadError, SafeFetchError, TransportError
from .transport import HttpxResponse, HttpxTransport, create_transport

__all__ = [
    "BodyReadError",
    "Envelope",
    "HttpxResponse",
    "HttpxTransport",
    "ResilientClient",
    "SERVER_ERROR_RESPONSE",
    "SafeFetchError",
    "Settlement",
    "TransportError",
    "create_transport",
    "decode_body",
    "is_server_error",
    "read_envelope",
    "request",
    "status_classifier",
]
