"""Exceptions raised inside the transport boundary.

The client absorbs all of these and turns them into ``SERVER_ERROR_RESPONSE``;
they are only visible to code that calls a transport directly.
"""


class SafeFetchError(Exception):
    """Base exception for safefetch failures."""


class TransportError(SafeFetchError):
    """The transport could not produce a response.

    Args:
        message: Human-readable error description.
        url: The request URL, when known.
    """

    def __init__(self, message: str, url: str = None) -> None:
        super().__init__(message)
        self.url = url


class BodyReadError(SafeFetchError):
    """A response body could not be read as text."""
