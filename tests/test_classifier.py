import pytest

from safefetch.classifier import is_server_error, status_classifier


class _Response:
    def __init__(self, status):
        self.status = status


@pytest.mark.parametrize(
    "status, flagged",
    [(200, False), (204, False), (301, False), (404, False), (499, False),
     (500, True), (502, True), (503, True), (504, True), (599, True), (600, False)],
)
def test_default_policy_flags_5xx(status, flagged):
    assert is_server_error(_Response(status)) is flagged


@pytest.mark.parametrize("status", [None, "200", 200.0, True])
def test_missing_or_non_integer_status_is_flagged(status):
    assert is_server_error(_Response(status)) is True


def test_object_without_status_is_flagged():
    assert is_server_error(object()) is True


def test_custom_range():
    classifier = status_classifier(min_status=400)

    assert classifier(_Response(399)) is False
    assert classifier(_Response(404)) is True
    assert classifier(_Response(503)) is True
