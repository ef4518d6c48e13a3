import pytest

from safefetch.decoder import decode_body, read_envelope, read_text
from safefetch.errors import BodyReadError


@pytest.mark.parametrize(
    "text, expected",
    [
        ('{"a": 1}', {"a": 1}),
        ("[1, 2]", [1, 2]),
        ("{}", {}),
        ("[]", []),
        ('"hello"', "hello"),
        ("42", 42),
        ("1.5", 1.5),
        ("true", True),
        ('  {"padded": true}\n', {"padded": True}),
    ],
)
def test_truthy_json_is_decoded(text, expected):
    assert decode_body(text) == (expected, True)


@pytest.mark.parametrize(
    "text",
    ["", " ", "\n\t", "null", "0", "0.0", "false", '""', "not json", "{'single': 'quotes'}", "NaN", "-Infinity", "[1,"],
)
def test_falsy_or_invalid_json_falls_back(text):
    assert decode_body(text) == ({"transformedValue": text}, False)


class _Response:
    ok = True
    status = 200

    def __init__(self, body):
        self._body = body

    async def text(self):
        return self._body


@pytest.mark.asyncio
async def test_read_envelope_copies_response_fields():
    response = _Response('{"a": [1]}')

    envelope = await read_envelope(response)

    assert envelope.json == {"a": [1]}
    assert envelope.is_json is True
    assert envelope.text == '{"a": [1]}'
    assert envelope.ok is True
    assert envelope.status == 200
    assert envelope.original_response is response


@pytest.mark.asyncio
async def test_read_text_without_accessor_raises():
    class Opaque:
        ok = True
        status = 200

    with pytest.raises(BodyReadError):
        await read_text(Opaque())


@pytest.mark.asyncio
async def test_read_text_normalizes_none_and_bytes():
    assert await read_text(_Response(None)) == ""
    assert await read_text(_Response("café".encode("utf-8"))) == "café"
    assert await read_text(_Response(b"\xff\xfe")) == "\ufffd\ufffd"


def test_deeply_nested_malformed_json_falls_back():
    text = "[" * 5000
    assert decode_body(text) == ({"transformedValue": text}, False)


def test_nesting_beyond_parser_depth_does_not_raise():
    text = '{"a":' * 100000 + "1" + "}" * 100000
    body, is_json = decode_body(text)
    if not is_json:
        assert body == {"transformedValue": text}
