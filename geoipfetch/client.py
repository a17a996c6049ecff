"""Client for downloading GeoIP2 and GeoLite2 MMDB databases."""

from __future__ import annotations

import gzip
import io
import json
import re
import tarfile
import zlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import BinaryIO
from urllib.parse import quote, urlencode

import requests

from .defaults import user_agent
from .errors import HTTPError

DEFAULT_ENDPOINT = "https://updates.maxmind.com"

_ERROR_BODY_LIMIT = 256

_MONTHS = {
    name: number
    for number, name in enumerate(
        ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
         "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"),
        start=1,
    )
}

_RFC1123 = re.compile(
    r"(?:Mon|Tue|Wed|Thu|Fri|Sat|Sun), "
    r"(?P<day>\d{2}) (?P<month>[A-Z][a-z]{2}) (?P<year>\d{4}) "
    r"(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2}) "
    r"(?P<zone>[A-Z]{3,5})"
)


class ClientError(Exception):
    """A request to the update service failed."""


@dataclass(frozen=True)
class Metadata:
    """What the service reports about the current release of an edition."""

    edition_id: str
    md5: str
    date: str


class _EditionReader(io.RawIOBase):
    """Reads the database out of the archive and closes the whole stream."""

    def __init__(self, member: BinaryIO, closers: list) -> None:
        super().__init__()
        self._member = member
        self._closers = closers

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        data = self._member.read(len(buffer))
        size = len(data)
        buffer[:size] = data
        return size

    def close(self) -> None:
        if self.closed:
            return
        errors: list[BaseException] = []
        for closer in (self._member, *self._closers):
            try:
                closer.close()
            except Exception as exc:
                errors.append(exc)
        super().close()
        if errors:
            raise errors[0]


@dataclass
class DownloadResponse:
    """The result of a download.

    ``reader`` is always readable. When ``update_available`` is true it holds
    the database, and the caller must read and close it; ``md5`` and
    ``last_modified`` are only set in that case.
    """

    reader: BinaryIO = field(default_factory=io.BytesIO)
    update_available: bool = False
    md5: str = ""
    last_modified: datetime | None = None

    def close(self) -> None:
        """Release the connection behind the reader."""
        self.reader.close()

    def __enter__(self) -> DownloadResponse:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def parse_time(value: str) -> datetime:
    """Parse an RFC 1123 date such as ``Fri, 23 Feb 2024 00:00:00 GMT`` as UTC."""
    match = _RFC1123.fullmatch(value)
    if match is None or match["month"] not in _MONTHS:
        raise ValueError(f"parsing time: {value!r} is not an RFC 1123 date")
    try:
        return datetime(
            int(match["year"]),
            _MONTHS[match["month"]],
            int(match["day"]),
            int(match["hour"]),
            int(match["minute"]),
            int(match["second"]),
            tzinfo=timezone.utc,
        )
    except ValueError as exc:
        raise ValueError(f"parsing time: {exc}") from exc


class Client:
    """Downloads database editions; safe to share between threads once built."""

    def __init__(
        self,
        account_id: int,
        license_key: str,
        endpoint: str = DEFAULT_ENDPOINT,
        session: requests.Session | None = None,
    ) -> None:
        if account_id <= 0:
            raise ValueError(f"invalid account ID: {account_id}")
        if not license_key:
            raise ValueError(f"invalid license key: {license_key}")
        self.account_id = account_id
        self.license_key = license_key
        self.endpoint = endpoint
        self.session = session if session is not None else requests.Session()

    def _get(self, url: str, *, stream: bool = False) -> requests.Response:
        return self.session.get(
            url,
            headers={"User-Agent": user_agent()},
            auth=(str(self.account_id), self.license_key),
            stream=stream,
        )

    def get_metadata(self, edition_id: str) -> Metadata:
        """Fetch the metadata of the current release of an edition."""
        url = f"{self.endpoint}/geoip/updates/metadata?" + urlencode(
            {"edition_id": edition_id}
        )
        try:
            with self._get(url) as response:
                body = response.content
                status = response.status_code
        except requests.RequestException as exc:
            raise ClientError(f"performing metadata request: {exc}") from exc

        if status != 200:
            http_error = HTTPError(status, body.decode("utf-8", errors="replace"))
            raise ClientError(f"unexpected HTTP status code: {http_error}") from http_error

        try:
            document = json.loads(body)
            if not isinstance(document, dict):
                raise ValueError("expected a JSON object")
            databases = document.get("databases") or []
            if not isinstance(databases, list) or not all(
                isinstance(entry, dict) for entry in databases
            ):
                raise ValueError("databases must be a list of objects")
        except ValueError as exc:
            raise ClientError(f"parsing metadata body: {exc}") from exc

        if len(databases) != 1:
            raise ClientError(f"response does not contain edition {edition_id}")

        entry = databases[0]
        return Metadata(
            edition_id=str(entry.get("edition_id", "")),
            md5=str(entry.get("md5", "")),
            date=str(entry.get("date", "")),
        )

    def download(self, edition_id: str, md5: str) -> DownloadResponse:
        """Download an edition unless ``md5`` already matches the server's copy.

        Raises ClientError, caused by an HTTPError when the server answers
        with a status other than 200.
        """
        metadata = self.get_metadata(edition_id)
        if metadata.md5 == md5:
            return DownloadResponse(reader=io.BytesIO(b""), update_available=False)

        reader, last_modified = self._download(edition_id, metadata.date)
        return DownloadResponse(
            reader=reader,
            update_available=True,
            md5=metadata.md5,
            last_modified=last_modified,
        )

    def _download(self, edition_id: str, date: str) -> tuple[BinaryIO, datetime]:
        params = urlencode([("date", date.replace("-", "")), ("suffix", "tar.gz")])
        escaped = quote(edition_id, safe="!$&'()*+,;=:@")
        url = f"{self.endpoint}/geoip/databases/{escaped}/download?" + params

        try:
            response = self._get(url, stream=True)
        except requests.RequestException as exc:
            raise ClientError(f"performing download request: {exc}") from exc

        try:
            return self._open_edition(response)
        except BaseException:
            response.close()
            raise

    @staticmethod
    def _open_edition(response: requests.Response) -> tuple[BinaryIO, datetime]:
        if response.status_code != 200:
            head = next(response.iter_content(_ERROR_BODY_LIMIT), b"")
            http_error = HTTPError(
                response.status_code,
                head[:_ERROR_BODY_LIMIT].decode("utf-8", errors="replace"),
            )
            raise ClientError(f"unexpected HTTP status code: {http_error}") from http_error

        response.raw.decode_content = True
        gz = gzip.GzipFile(fileobj=response.raw, mode="rb")
        try:
            try:
                gz.peek(1)
            except (OSError, EOFError, zlib.error) as exc:
                raise ClientError(
                    f"encountered an error creating GZIP reader: {exc}"
                ) from exc

            try:
                archive = tarfile.open(fileobj=gz, mode="r|")
                member_file = None
                for member in archive:
                    if member.name.endswith(".mmdb"):
                        member_file = archive.extractfile(member)
                        break
            except (tarfile.TarError, OSError, EOFError, zlib.error) as exc:
                raise ClientError(f"reading tar archive: {exc}") from exc
            if member_file is None:
                raise ClientError("tar archive does not contain an mmdb file")

            try:
                last_modified = parse_time(response.headers.get("Last-Modified", ""))
            except ValueError as exc:
                raise ClientError(f"reading Last-Modified header: {exc}") from exc
        except BaseException:
            gz.close()
            raise

        return _EditionReader(member_file, [archive, gz, response]), last_modified