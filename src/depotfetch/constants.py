"""
Constants and configuration values for depotfetch.

This module contains all hardcoded values, URLs, timeouts, and other constants
used throughout the application.
"""

# GitHub API URLs
GITHUB_API_BASE = "https://api.github.com/repos"
GITHUB_BRANCH_URL_TEMPLATE = GITHUB_API_BASE + "/{repo}/branches/{branch}"
GITHUB_TREE_URL_TEMPLATE = GITHUB_API_BASE + "/{repo}/git/trees/{sha}?recursive=1"
GITHUB_ZIPBALL_URL_TEMPLATE = GITHUB_API_BASE + "/{repo}/zipball/{label}"

# Raw-content mirrors, tried strictly in this order
MIRROR_URL_TEMPLATES = (
    "https://gcore.jsdelivr.net/gh/{repo}@{sha}/{path}",
    "https://fastly.jsdelivr.net/gh/{repo}@{sha}/{path}",
    "https://cdn.jsdelivr.net/gh/{repo}@{sha}/{path}",
    "https://raw.githubusercontent.com/{repo}/{sha}/{path}",
)

# Network timeouts (in seconds)
GITHUB_API_TIMEOUT = 10
FILE_PROBE_TIMEOUT = 20
ARCHIVE_PROBE_TIMEOUT = 600

# Progress reporting while enumerating repository files
PROGRESS_LOG_INTERVAL = 10

# Repository type labels as they appear in configuration
REPO_TYPE_BRANCH = "Branch"
REPO_TYPE_DECRYPTED = "Decrypted"
REPO_TYPE_ENCRYPTED = "Encrypted"

DEFAULT_REPOSITORIES = [
    {"name": "Fairyvmos/bruh-hub", "type": REPO_TYPE_BRANCH},
    {"name": "SteamAutoCracks/ManifestHub", "type": REPO_TYPE_BRANCH},
    {"name": "ManifestHub/ManifestHub", "type": REPO_TYPE_DECRYPTED},
]

# Steam directory names (relative to the Steam config directory)
STEAM_PLUGIN_DIR_NAME = "stplug-in"
STEAM_STATS_DIR_NAME = "StatsExport"
STEAM_DEPOTCACHE_DIR_NAME = "depotcache"

STEAM_CONFIG_CANDIDATES_WINDOWS = (
    "C:\\Program Files (x86)\\Steam\\config",
    "C:\\Program Files\\Steam\\config",
)
STEAM_CONFIG_CANDIDATES_LINUX = (
    "~/.steam/steam/config",
    "~/.local/share/Steam/config",
)
STEAM_CONFIG_CANDIDATES_MACOS = ("~/Library/Application Support/Steam/config",)
STEAM_REGISTRY_KEY = r"Software\Valve\Steam"
STEAM_PROCESS_NAME_WINDOWS = "steam.exe"
STEAM_PROCESS_NAME_POSIX = "steam"
STEAM_RESTART_DELAY = 3

# File extensions and name markers used when dispersing archives
LUA_EXTENSION = ".lua"
BIN_EXTENSION = ".bin"
MANIFEST_EXTENSION = ".manifest"
MANIFEST_NAME_MARKER = "manifest"
ZIP_EXTENSION = ".zip"

# Files reported when listing the download directory
DOWNLOADED_FILE_EXTENSIONS = (ZIP_EXTENSION, MANIFEST_EXTENSION, LUA_EXTENSION)

# Output naming
ARCHIVE_OUTPUT_TEMPLATE = "{game} - {app_id} (Branch).zip"
TEMP_DIR_TEMPLATE = "_{game}_{app_id}_{encrypted}_temp"

# Lua plugin parsing
SET_MANIFEST_ID_PATTERN = r'setManifestid\s*\(\s*(\d+)\s*,\s*"(\d+)"\s*,\s*0\s*\)'
ADDAPPID_PATTERN = r"addappid\s*\(\s*(\d+)\s*\)"
MANIFEST_FILENAME_PATTERN = r"(\d+)_(\d+)\.manifest"
MANIFEST_APPEND_MARKER = "-- Appended by depotfetch --"
DLC_SYNC_MARKER = "-- DLCs Synced by depotfetch --"

# Logging configuration
LOGGER_NAME = "depotfetch"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_NAME = "depotfetch.log"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5

# Configuration file names
CONFIG_FILE_NAME = "depotfetch.yaml"
DOWNLOAD_DIR_NAME = "depotfetch"

# Environment variable names
LOG_LEVEL_ENV_VAR = "DEPOTFETCH_LOG_LEVEL"
