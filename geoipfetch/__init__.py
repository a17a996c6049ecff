"""Client, local file storage and file locking for GeoIP2 and GeoLite2 MMDB updates."""

__version__ = "7.1.1"