# src/depotfetch/setup_config.py

import os
import platform
from typing import Any, Dict, List, Optional

import platformdirs
import yaml

from depotfetch.constants import (
    ARCHIVE_PROBE_TIMEOUT,
    CONFIG_FILE_NAME,
    DEFAULT_REPOSITORIES,
    DOWNLOAD_DIR_NAME,
    FILE_PROBE_TIMEOUT,
    GITHUB_API_TIMEOUT,
    STEAM_CONFIG_CANDIDATES_LINUX,
    STEAM_CONFIG_CANDIDATES_MACOS,
    STEAM_CONFIG_CANDIDATES_WINDOWS,
    STEAM_REGISTRY_KEY,
)
from depotfetch.download.interfaces import RepositoryEntry
from depotfetch.exceptions import ConfigFileError, ConfigurationError
from depotfetch.log_utils import logger


def get_platform() -> str:
    """
    Determine the platform on which the script is running.
    """
    system = platform.system()
    if system == "Windows":
        return "windows"
    elif system == "Darwin":
        return "mac"
    elif system == "Linux":
        return "linux"
    else:
        return "unknown"


def get_downloads_dir() -> str:
    """
    Get the default downloads directory, falling back to the home directory.
    """
    home_dir = os.path.expanduser("~")
    for name in ("Downloads", "Download"):
        downloads_dir = os.path.join(home_dir, name)
        if os.path.exists(downloads_dir):
            return downloads_dir
    return home_dir


# Default directories
DEFAULT_DOWNLOAD_DIR = os.path.join(get_downloads_dir(), DOWNLOAD_DIR_NAME)

# Get the config directory using platformdirs
CONFIG_DIR = platformdirs.user_config_dir("depotfetch")
CONFIG_FILE = os.path.join(CONFIG_DIR, CONFIG_FILE_NAME)
LOG_DIR = platformdirs.user_log_dir("depotfetch")


def default_config() -> Dict[str, Any]:
    """Return a fresh copy of the default configuration."""
    return {
        "DOWNLOAD_DIR": DEFAULT_DOWNLOAD_DIR,
        "STEAM_CONFIG_DIR": None,
        "REPOSITORIES": [dict(item) for item in DEFAULT_REPOSITORIES],
        "FILE_PROBE_TIMEOUT": FILE_PROBE_TIMEOUT,
        "ARCHIVE_PROBE_TIMEOUT": ARCHIVE_PROBE_TIMEOUT,
        "API_TIMEOUT": GITHUB_API_TIMEOUT,
        "DISPERSE_ARCHIVES": True,
        "LOG_LEVEL": "",
        "LOG_TO_FILE": False,
    }


def config_exists(directory: Optional[str] = None):
    """
    Return whether a configuration file exists and its path.

    Returns:
        tuple: (exists, path) where path is None when no file exists.
    """
    config_path = os.path.join(directory, CONFIG_FILE_NAME) if directory else CONFIG_FILE
    if os.path.exists(config_path):
        return True, config_path
    return False, None


def load_config(directory: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the depotfetch configuration YAML merged over the defaults.

    A missing file yields the defaults. Keys present in the file replace the
    default value; unknown keys are kept as-is.

    Parameters:
        directory (str | None): Directory holding CONFIG_FILE_NAME; the
            platformdirs location is used when None.

    Returns:
        dict: The effective configuration.

    Raises:
        ConfigFileError: The file exists but cannot be read or parsed, or its
            top level is not a mapping.
    """
    config = default_config()
    exists, config_path = config_exists(directory)
    if not exists:
        logger.debug("No configuration file found; using defaults")
        return config

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigFileError(
            f"Could not load configuration from {config_path}", details=str(e)
        ) from e

    if loaded is None:
        return config
    if not isinstance(loaded, dict):
        raise ConfigFileError(
            f"Configuration in {config_path} must be a mapping",
            details=f"got {type(loaded).__name__}",
        )

    config.update(loaded)
    logger.debug(f"Loaded configuration from {config_path}")
    return config


def save_config(config: Dict[str, Any], directory: Optional[str] = None) -> str:
    """
    Write config as YAML and return the path written.

    Raises:
        ConfigFileError: The file cannot be written.
    """
    config_dir = directory or CONFIG_DIR
    config_path = os.path.join(config_dir, CONFIG_FILE_NAME)
    try:
        os.makedirs(config_dir, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        raise ConfigFileError(
            f"Could not write configuration to {config_path}", details=str(e)
        ) from e
    return config_path


def write_default_config(directory: Optional[str] = None, overwrite: bool = False) -> str:
    """
    Create a configuration file holding the defaults.

    An existing file is left untouched unless overwrite is set.

    Returns:
        str: Path of the configuration file.
    """
    exists, existing_path = config_exists(directory)
    if exists and not overwrite:
        logger.info(f"Configuration already exists at {existing_path}")
        return existing_path
    config_path = save_config(default_config(), directory)
    logger.info(f"Wrote default configuration to {config_path}")
    return config_path


def get_repositories(config: Dict[str, Any]) -> List[RepositoryEntry]:
    """
    Parse the REPOSITORIES list of config into entries, preserving order.

    Raises:
        ConfigurationError: REPOSITORIES is not a list of mappings with a name.
    """
    raw = config.get("REPOSITORIES") or []
    if not isinstance(raw, list):
        raise ConfigurationError("REPOSITORIES must be a list")

    entries = []
    for item in raw:
        if not isinstance(item, dict) or not str(item.get("name") or "").strip():
            raise ConfigurationError(
                "Each repository needs a name", details=repr(item)
            )
        entry = RepositoryEntry.from_config(item)
        if item.get("type") and entry.strategy.label.lower() != str(item["type"]).strip().lower():
            logger.debug(
                f"Unknown repository type {item['type']!r} for {entry.name}; treating as {entry.strategy.label}"
            )
        entries.append(entry)
    return entries


def _registry_steam_path() -> Optional[str]:
    """Read the SteamPath value from the Windows registry, if available."""
    try:
        import winreg
    except ImportError:
        return None

    try:
        with winreg.OpenKey(winreg.HKEY_CURRENT_USER, STEAM_REGISTRY_KEY) as key:
            value, _ = winreg.QueryValueEx(key, "SteamPath")
    except OSError as e:
        logger.debug(f"Steam registry key not readable: {e}")
        return None
    return str(value) if value else None


def steam_config_candidates() -> List[str]:
    """Return candidate Steam config directories for the current platform, in order."""
    current = get_platform()
    if current == "windows":
        candidates = list(STEAM_CONFIG_CANDIDATES_WINDOWS)
        steam_path = _registry_steam_path()
        if steam_path:
            candidates.append(os.path.join(steam_path, "config"))
        return candidates
    if current == "mac":
        return [os.path.expanduser(p) for p in STEAM_CONFIG_CANDIDATES_MACOS]
    if current == "linux":
        return [os.path.expanduser(p) for p in STEAM_CONFIG_CANDIDATES_LINUX]
    return []


def find_steam_config_path(config: Optional[Dict[str, Any]] = None) -> str:
    """
    Locate the Steam `config` directory.

    An explicit STEAM_CONFIG_DIR in config wins and must exist. Otherwise the
    platform candidates are checked in order.

    Raises:
        ConfigurationError: No Steam config directory could be found.
    """
    configured = (config or {}).get("STEAM_CONFIG_DIR")
    if configured:
        configured = os.path.expanduser(str(configured))
        if os.path.isdir(configured):
            return configured
        raise ConfigurationError(
            "Configured STEAM_CONFIG_DIR does not exist", details=configured
        )

    for candidate in steam_config_candidates():
        if os.path.isdir(candidate):
            logger.debug(f"Found Steam config directory at {candidate}")
            return candidate

    raise ConfigurationError(
        "Could not locate the Steam config directory",
        details="set STEAM_CONFIG_DIR in the configuration file",
    )
