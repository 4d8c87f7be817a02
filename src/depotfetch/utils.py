# src/depotfetch/utils.py
import importlib.metadata
import re
from typing import Optional
from urllib.parse import urlsplit

import requests

from depotfetch.log_utils import logger

# Characters Windows refuses in file names
_UNSAFE_NAME_RX = re.compile(r'[\\/*?:"<>|]')

# Cache for the User-Agent string to avoid repeated metadata lookups
_USER_AGENT_CACHE: Optional[str] = None


def get_user_agent() -> str:
    """
    Get the User-Agent string used for HTTP requests.

    Returns:
        The string `depotfetch/{version}`, where `{version}` is the installed package version or `unknown` if the version cannot be determined.
    """
    global _USER_AGENT_CACHE

    if _USER_AGENT_CACHE is None:
        try:
            app_version = importlib.metadata.version("depotfetch")
        except importlib.metadata.PackageNotFoundError:
            app_version = "unknown"

        _USER_AGENT_CACHE = f"depotfetch/{app_version}"

    return _USER_AGENT_CACHE


def create_session() -> requests.Session:
    """
    Build a requests session carrying the depotfetch User-Agent.

    No retry adapter is mounted: every probe is a single attempt and fallback is
    handled by trying the next mirror or repository.
    """
    session = requests.Session()
    session.headers.update({"User-Agent": get_user_agent()})
    return session


def sanitize_game_name(name: str) -> str:
    """
    Make a game name safe for use inside file and directory names.

    Strips characters that are invalid on Windows and surrounding whitespace.
    An empty result is replaced with "game" so that output paths stay valid.
    """
    cleaned = _UNSAFE_NAME_RX.sub("", name or "").strip()
    if not cleaned:
        logger.debug(f"Game name {name!r} sanitized to nothing; using 'game'")
        return "game"
    return cleaned


def host_of(url: str) -> str:
    """Return the host part of a URL, or the URL itself when it has none."""
    return urlsplit(url).netloc or url


def is_numeric_id(value: object) -> bool:
    """True when value is a non-empty string of ASCII digits."""
    return isinstance(value, str) and value.isascii() and value.isdigit()
