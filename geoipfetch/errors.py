"""Errors raised while talking to the update service."""

from __future__ import annotations


class HTTPError(Exception):
    """A request received a status code other than 200."""

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"received HTTP status code: {status_code}: {body}")
        self.status_code = status_code
        self.body = body


def _chain(err: BaseException | None):
    """Yield an exception and every exception it was raised from."""
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        yield err
        if err.__cause__ is not None:
            err = err.__cause__
        elif not err.__suppress_context__:
            err = err.__context__
        else:
            err = None


def is_permanent_error(err: BaseException | None) -> bool:
    """Return True if the error is a client-side HTTP error not worth retrying."""
    return any(
        isinstance(item, HTTPError) and 400 <= item.status_code < 500
        for item in _chain(err)
    )