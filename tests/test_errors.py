import pytest

from geoipfetch.errors import HTTPError, is_permanent_error


@pytest.mark.parametrize(
    ("err", "want"),
    [
        (ConnectionError("stream error: INTERNAL_ERROR"), False),
        (HTTPError(502), False),
        (HTTPError(400), True),
        (None, False),
    ],
    ids=["stream internal error", "bad gateway", "bad request", "nil"],
)
def test_is_permanent_error(err, want):
    assert is_permanent_error(err) is want


def test_permanent_error_found_through_cause():
    try:
        try:
            raise HTTPError(404, "not found")
        except HTTPError as inner:
            raise RuntimeError("unexpected HTTP status code") from inner
    except RuntimeError as outer:
        assert is_permanent_error(outer) is True


def test_server_error_through_cause_is_not_permanent():
    try:
        try:
            raise HTTPError(500, "oops")
        except HTTPError as inner:
            raise RuntimeError("wrapped") from inner
    except RuntimeError as outer:
        assert is_permanent_error(outer) is False


def test_http_error_message_and_fields():
    err = HTTPError(500, "boom")
    assert str(err) == "received HTTP status code: 500: boom"
    assert err.status_code == 500
    assert err.body == "boom"