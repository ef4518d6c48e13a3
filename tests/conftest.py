import asyncio

import pytest


class FakeResponse:
    """Minimal raw response: ``ok``, ``status`` and an async ``text()``."""

    def __init__(self, status=200, body="", ok=None, text_error=None):
        self.status = status
        self.ok = (200 <= status < 300) if ok is None else ok
        self._body = body
        self._text_error = text_error
        self.text_calls = 0

    async def text(self):
        self.text_calls += 1
        if self._text_error is not None:
            raise self._text_error
        return self._body


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def make_transport():
    """Build an async transport returning ``response`` after ``delay`` seconds.

    The transport records every ``(url, options)`` call in ``transport.calls``.
    When ``gate`` is given, the transport waits for that event instead of sleeping.
    """
    def factory(response=None, delay=0.0, error=None, gate=None):
        calls = []

        async def transport(url, options):
            calls.append((url, options))
            if gate is not None:
                await gate.wait()
            elif delay:
                await asyncio.sleep(delay)
            if error is not None:
                raise error
            return response

        transport.calls = calls
        return transport

    return factory
