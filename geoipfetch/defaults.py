"""Version and platform default locations."""

from __future__ import annotations

import os
import sys

VERSION = "7.1.1"


def _windows_base() -> str:
    return os.environ.get("SYSTEMDRIVE", "") + "\\ProgramData\\MaxMind\\GeoIPUpdate"


def default_config_file() -> str:
    """Return the default location of the configuration file."""
    if sys.platform == "win32":
        return _windows_base() + "\\GeoIP.conf"
    return "/usr/local/etc/GeoIP.conf"


def default_database_directory() -> str:
    """Return the default directory the databases are stored in."""
    if sys.platform == "win32":
        return _windows_base() + "\\GeoIP"
    return "/usr/local/share/GeoIP"


def user_agent() -> str:
    """Return the User-Agent sent with every request."""
    return f"geoipupdate/{VERSION}"