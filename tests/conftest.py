import io
import time
import zipfile
from pathlib import Path

import platformdirs
import pytest
import requests

_NETWORK_BLOCK_MSG = (
    "Network access is blocked during tests. Mock requests.* or Session.request."
)


def _block_network(*_args, **_kwargs):
    """
    Prevent network calls in tests by raising a RuntimeError.

    Raises:
        RuntimeError: with `_NETWORK_BLOCK_MSG` indicating that network access is blocked during tests.
    """
    raise RuntimeError(_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """Register the markers used across the suite."""
    for marker in (
        "unit: fast isolated tests",
        "core_downloads: probe, mirror, resolver and orchestrator tests",
        "file_operations: archive, dispersal and lua file tests",
        "user_interface: CLI and menu tests",
        "infrastructure: logging, configuration and process control tests",
    ):
        config.addinivalue_line("markers", marker)


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Point platformdirs and the depotfetch.setup_config locations at a temporary tree.

    Creates temp config, log and download directories, patches the platformdirs
    user_* functions to return them and updates CONFIG_DIR, CONFIG_FILE,
    LOG_DIR and DEFAULT_DOWNLOAD_DIR in depotfetch.setup_config.
    """
    base = tmp_path_factory.mktemp("depotfetch")
    config_dir = base / "config"
    log_dir = base / "log"
    cache_dir = base / "cache"
    downloads_dir = base / "downloads"

    for path in (config_dir, log_dir, cache_dir, downloads_dir):
        path.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    monkeypatch.setenv("XDG_CACHE_HOME", str(cache_dir))

    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_log_dir", lambda *_args, **_kwargs: str(log_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_cache_dir", lambda *_args, **_kwargs: str(cache_dir)
    )

    import depotfetch.setup_config as setup_config

    monkeypatch.setattr(setup_config, "CONFIG_DIR", str(config_dir))
    monkeypatch.setattr(
        setup_config,
        "CONFIG_FILE",
        str(Path(config_dir) / setup_config.CONFIG_FILE_NAME),
    )
    monkeypatch.setattr(setup_config, "LOG_DIR", str(log_dir))
    monkeypatch.setattr(
        setup_config, "DEFAULT_DOWNLOAD_DIR", str(downloads_dir / "depotfetch")
    )


def pytest_runtest_setup():
    """
    Prevent real network requests during tests by replacing HTTP entry points with blocking callables.
    """
    requests.get = _block_network
    requests.post = _block_network
    requests.head = _block_network
    requests.Session.request = _block_network


@pytest.fixture(autouse=True)
def _mock_time_sleep(monkeypatch):
    """Make time.sleep instant for all tests to prevent delays."""
    monkeypatch.setattr(time, "sleep", lambda *_args, **_kwargs: None)


def make_zip(members):
    """
    Build an in-memory zip archive.

    Parameters:
        members (dict): Archive member name -> content (str or bytes). Names
            ending in "/" become directory entries.

    Returns:
        bytes: The zip archive.
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in members.items():
            if name.endswith("/"):
                zf.writestr(zipfile.ZipInfo(name), b"")
            else:
                zf.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture
def zip_factory():
    """Provide make_zip to tests."""
    return make_zip


@pytest.fixture
def steam_config(tmp_path):
    """
    Create a fake Steam config directory with empty target directories.

    Returns:
        Path: The Steam config directory.
    """
    config_dir = tmp_path / "Steam" / "config"
    for name in ("stplug-in", "StatsExport", "depotcache"):
        (config_dir / name).mkdir(parents=True)
    return config_dir


def make_damaged_deflate_zip(name="730.lua"):
    """
    Build a deflated zip whose member data is not valid deflate.

    The central directory stays intact so the archive opens, but reading the
    member fails inside zlib.

    Returns:
        bytes: The zip archive.
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(name, b"addappid(730)\n" * 64)
        info = zf.getinfo(name)
    data = bytearray(buffer.getvalue())

    # local file header: 30 fixed bytes, then file name and extra field
    offset = info.header_offset
    name_len = int.from_bytes(data[offset + 26:offset + 28], "little")
    extra_len = int.from_bytes(data[offset + 28:offset + 30], "little")
    start = offset + 30 + name_len + extra_len
    # 0xFF starts a final block of reserved type 3
    data[start:start + info.compress_size] = b"\xff" * info.compress_size
    return bytes(data)


@pytest.fixture
def damaged_zip_factory():
    """Provide make_damaged_deflate_zip to tests."""
    return make_damaged_deflate_zip
