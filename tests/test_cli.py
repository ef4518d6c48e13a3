import json
import logging

import pytest
import structlog

from safefetch import cli


class _Response:
    def __init__(self, status, body):
        self.status = status
        self.ok = 200 <= status < 300
        self._body = body

    async def text(self):
        return self._body


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    structlog.reset_defaults()
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)


def test_prints_envelope_and_exits_zero(capsys):
    calls = []

    async def transport(url, options):
        calls.append((url, options))
        return _Response(200, '{"a": 1}')

    code = cli.main(
        ["https://example.com/users", "-X", "POST", "-H", "Content-Type: application/json", "-d", '{"name": "Jack"}', "--timeout", "500"],
        transport=transport,
    )

    assert code == 0
    assert json.loads(capsys.readouterr().out) == {
        "json": {"a": 1},
        "text": '{"a": 1}',
        "isJson": True,
        "ok": True,
        "status": 200,
    }
    assert calls == [(
        "https://example.com/users",
        {
            "method": "POST",
            "headers": {"Content-Type": "application/json"},
            "body": '{"name": "Jack"}',
            "timeout": 500.0,
        },
    )]


def test_failure_exits_one(capsys):
    async def transport(url, options):
        raise ConnectionError("refused")

    code = cli.main(["https://example.com/"], transport=transport)

    assert code == 1
    output = json.loads(capsys.readouterr().out)
    assert output["ok"] is False
    assert output["status"] == 503


def test_invalid_header_is_rejected():
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["https://example.com/", "-H", "no-colon"], transport=lambda url, options: None)
    assert excinfo.value.code == 2


def test_missing_config_file(tmp_path, capsys):
    code = cli.main(["https://example.com/", "--config", str(tmp_path / "absent.yaml")])

    assert code == 2
    assert "Configuration file not found" in capsys.readouterr().err
