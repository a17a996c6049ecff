"""Storing downloaded databases on the local file system."""

from __future__ import annotations

import abc
import hashlib
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, BinaryIO, Mapping

logger = logging.getLogger(__name__)

ZERO_MD5 = "00000000000000000000000000000000"
"""The hash reported for an edition that has not been downloaded yet."""

EXTENSION = ".mmdb"
TEMP_EXTENSION = ".temporary"

_CHUNK_SIZE = 64 * 1024


class Writer(abc.ABC):
    """Somewhere a database can be written to and its current hash read from."""

    @abc.abstractmethod
    def write(
        self,
        edition_id: str,
        reader: BinaryIO,
        new_md5: str,
        last_modified: datetime | None,
    ) -> None:
        """Store the database read from ``reader``, then close ``reader``."""

    @abc.abstractmethod
    def get_hash(self, edition_id: str) -> str:
        """Return the MD5 of the stored database, or ZERO_MD5 if there is none."""


def _to_timestamp(moment: datetime | None) -> int:
    if moment is None:
        return 0
    return int(moment.timestamp())


def _from_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


@dataclass
class ReadResult:
    """The outcome of checking one edition for an update."""

    edition_id: str
    old_hash: str
    new_hash: str
    modified_at: datetime | None = None
    checked_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping; unset times are left out, set ones are Unix seconds."""
        data: dict[str, Any] = {
            "edition_id": self.edition_id,
            "old_hash": self.old_hash,
            "new_hash": self.new_hash,
        }
        modified = _to_timestamp(self.modified_at)
        if modified:
            data["modified_at"] = modified
        checked = _to_timestamp(self.checked_at)
        if checked:
            data["checked_at"] = checked
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ReadResult:
        """Build a result from a mapping as produced by ``to_dict``."""
        try:
            return cls(
                edition_id=str(data.get("edition_id", "")),
                old_hash=str(data.get("old_hash", "")),
                new_hash=str(data.get("new_hash", "")),
                modified_at=_from_timestamp(data.get("modified_at")),
                checked_at=_from_timestamp(data.get("checked_at")),
            )
        except (TypeError, ValueError, OverflowError, OSError) as exc:
            raise ValueError(f"unmarshaling json into ReadResult: {exc}") from exc


class HashMismatchError(ValueError):
    """The downloaded database does not have the expected MD5."""

    def __init__(self, edition_id: str, expected: str, actual: str) -> None:
        super().__init__(
            f"validating hash for {edition_id}: md5 of new database ({actual}) "
            f"does not match expected md5 ({expected})"
        )
        self.edition_id = edition_id
        self.expected = expected
        self.actual = actual


def _sync_dir(path: Path) -> None:
    """Flush a directory's entries to storage where the platform allows it."""
    if os.name == "nt":
        return
    try:
        fd = os.open(path, os.O_RDONLY)
    except OSError as exc:
        raise OSError(f"opening database directory {path}: {exc}") from exc
    try:
        # Some file systems do not support syncing directories.
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)


def _drain(reader: BinaryIO) -> None:
    try:
        while reader.read(_CHUNK_SIZE):
            pass
    except Exception:
        pass


class LocalFileWriter(Writer):
    """Writes databases as ``<edition>.mmdb`` files into a directory."""

    def __init__(
        self,
        database_dir: str | os.PathLike[str],
        preserve_file_time: bool = False,
        verbose: bool = False,
    ) -> None:
        self.directory = Path(database_dir)
        try:
            self.directory.parent.mkdir(mode=0o750, parents=True, exist_ok=True)
        except OSError as exc:
            raise OSError(f"creating database directory: {exc}") from exc
        self.preserve_file_time = preserve_file_time
        self.verbose = verbose

    def file_path(self, edition_id: str) -> Path:
        """Return the path the database of an edition is stored at."""
        return self.directory / (edition_id + EXTENSION)

    def write(
        self,
        edition_id: str,
        reader: BinaryIO,
        new_md5: str,
        last_modified: datetime | None,
    ) -> None:
        """Write the database through a temporary file and move it into place.

        The content's MD5 must match ``new_md5``, ignoring case. ``reader`` is
        read to its end and closed whatever happens.
        """
        failed = True
        try:
            self._write(edition_id, reader, new_md5, last_modified)
            failed = False
        finally:
            _drain(reader)
            try:
                reader.close()
            except Exception as exc:
                if not failed:
                    raise OSError(f"closing reader for {edition_id}: {exc}") from exc

    def _write(
        self,
        edition_id: str,
        reader: BinaryIO,
        new_md5: str,
        last_modified: datetime | None,
    ) -> None:
        target = self.file_path(edition_id)
        temp = target.with_name(target.name + TEMP_EXTENSION)

        try:
            handle = open(temp, "wb")
        except OSError as exc:
            raise OSError(
                f"setting up database writer for {edition_id}: "
                f"creating temporary file at {temp}: {exc}"
            ) from exc

        try:
            digest = hashlib.md5()
            with handle:
                try:
                    while True:
                        chunk = reader.read(_CHUNK_SIZE)
                        if not chunk:
                            break
                        digest.update(chunk)
                        handle.write(chunk)
                except Exception as exc:
                    raise OSError(
                        f"writing to the temp file for {edition_id}: "
                        f"writing database: {exc}"
                    ) from exc

                actual = digest.hexdigest()
                if actual.lower() != new_md5.lower():
                    raise HashMismatchError(edition_id, new_md5, actual)

                try:
                    handle.flush()
                    os.fsync(handle.fileno())
                except OSError as exc:
                    raise OSError(
                        f"renaming temp file: syncing temporary file: {exc}"
                    ) from exc

            try:
                os.replace(temp, target)
            except OSError as exc:
                raise OSError(
                    f"renaming temp file: moving database into place: {exc}"
                ) from exc
        finally:
            try:
                temp.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("removing temporary file %s: %s", temp, exc)

        try:
            _sync_dir(target.parent)
        except OSError as exc:
            raise OSError(f"syncing database directory: {exc}") from exc

        if self.preserve_file_time and last_modified is not None:
            stamp = last_modified.timestamp()
            try:
                os.utime(target, (stamp, stamp))
            except OSError as exc:
                raise OSError(f"setting times on file {target}: {exc}") from exc

        if self.verbose:
            logger.info("Database %s successfully updated: %s", edition_id, new_md5)

    def get_hash(self, edition_id: str) -> str:
        """Return the hex MD5 of the stored database, or ZERO_MD5 if it is missing."""
        path = self.file_path(edition_id)
        digest = hashlib.md5()
        try:
            with open(path, "rb") as database:
                for chunk in iter(lambda: database.read(_CHUNK_SIZE), b""):
                    digest.update(chunk)
        except FileNotFoundError:
            if self.verbose:
                logger.info("Database does not exist, returning zeroed hash")
            return ZERO_MD5
        except OSError as exc:
            raise OSError(f"calculating database hash: {exc}") from exc

        result = digest.hexdigest()
        if self.verbose:
            logger.info("Calculated MD5 sum for %s: %s", path, result)
        return result