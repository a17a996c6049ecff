# geoipfetch

Building blocks for keeping GeoIP2 and GeoLite2 MMDB databases on local disk
up to date: a client for the update service, a writer that stores databases
safely, a cross-process file lock, and the error helpers they share.

## Modules

- `geoipfetch.client`: `Client`, `Metadata`, `DownloadResponse`,
  `ClientError` and `parse_time`.
- `geoipfetch.database`: `Writer`, `LocalFileWriter`, `ReadResult`,
  `HashMismatchError` and `ZERO_MD5`.
- `geoipfetch.file_lock`: `FileLock`.
- `geoipfetch.errors`: `HTTPError` and `is_permanent_error`.
- `geoipfetch.defaults`: `default_config_file`, `default_database_directory`
  and `user_agent`.

## Talking to the update service

`Client(account_id, license_key, endpoint=..., session=...)` checks its
arguments and raises `ValueError` for an account ID that is not positive or an
empty license key. `endpoint` defaults to `https://updates.maxmind.com`;
`session` lets you pass your own `requests.Session`, for example one with a
proxy configured. Every request carries HTTP basic authentication and the
`User-Agent` from `user_agent()`.

- `get_metadata(edition_id)` returns a `Metadata` with `edition_id`, `md5`
  and `date` for the current release of an edition.
- `download(edition_id, md5)` first fetches the metadata. If the server's MD5
  equals `md5`, it returns a `DownloadResponse` with `update_available` set
  to `False` and an empty reader. Otherwise it downloads the `tar.gz`
  archive, finds the first member whose name ends in `.mmdb`, and returns a
  response whose `reader` streams that member, with `md5` and
  `last_modified` (from the `Last-Modified` header, as UTC) filled in.

`DownloadResponse` is a context manager; closing it releases the connection.

```python
from geoipfetch.client import Client

client = Client(account_id=42, license_key="placeholder")
with client.download("GeoLite2-City", "00000000000000000000000000000000") as response:
    if response.update_available:
        data = response.reader.read()
```

Failures raise `ClientError`. When the server answers with a status other
than 200, the `ClientError` is raised from an `HTTPError` holding
`status_code` and the response body (at most 256 bytes of it for a download).
`is_permanent_error(err)` follows an exception's cause chain and returns
`True` when it finds an `HTTPError` with a 4xx status, meaning a retry will
not help.

`parse_time` parses RFC 1123 dates such as `Fri, 23 Feb 2024 00:00:00 GMT`
and raises `ValueError` for anything else.

## Storing databases

`LocalFileWriter(database_dir, preserve_file_time=False, verbose=False)`
keeps each edition as `<edition>.mmdb` in `database_dir`. It creates the
parent of that directory if it is missing; the directory itself must exist
before writing.

- `get_hash(edition_id)` returns the hex MD5 of the stored file, or
  `ZERO_MD5` (`00000000000000000000000000000000`) if there is none.
- `write(edition_id, reader, new_md5, last_modified)` copies the reader into
  `<edition>.mmdb.temporary`, checks its MD5 against `new_md5` ignoring case,
  syncs it, renames it into place and syncs the directory. A wrong hash raises
  `HashMismatchError` and leaves the existing database untouched. With
  `preserve_file_time`, the file's access and modification times are set to
  `last_modified`. The reader is always read to its end and closed.
- `file_path(edition_id)` gives the path an edition is stored at.

`Writer` is the abstract base for other storage targets.

```python
from geoipfetch.database import LocalFileWriter

writer = LocalFileWriter("/var/lib/GeoIP", preserve_file_time=True)
current = writer.get_hash("GeoLite2-City")
```

`ReadResult` records the outcome of checking one edition: `edition_id`,
`old_hash`, `new_hash`, `modified_at` and `checked_at`. `to_dict()` gives a
JSON-ready mapping in which the times are Unix seconds and unset times are
left out; `ReadResult.from_dict()` reads such a mapping back.

## Locking

`FileLock(path, verbose=False)` is an advisory lock on a file, creating the
file's directory if needed. `acquire()` does not wait: it raises
`TimeoutError` if another process holds the lock. Acquiring again through the
same object succeeds, and `release()` lets go completely. It can be used as a
context manager.

```python
from geoipfetch.file_lock import FileLock

with FileLock("/var/lib/GeoIP/.geoipupdate.lock"):
    ...
```

## Defaults

`default_config_file()` and `default_database_directory()` return the
platform's usual locations (`/usr/local/etc/GeoIP.conf` and
`/usr/local/share/GeoIP`, or paths under `%SYSTEMDRIVE%\ProgramData` on
Windows). Nothing in the package reads the configuration file.

## Logging

With `verbose=True`, `LocalFileWriter` and `FileLock` report what they do
through the standard `logging` module.

## What this package does not do

There is no command-line program and no complete update run. The package
does not read a configuration file, loop over a list of editions, download
several editions in parallel, retry failed downloads, or print a summary of
results. To update databases you combine the pieces yourself: take the
`FileLock`, call `get_hash`, `download` and `write` for each edition, and
build `ReadResult` records if you want a report.