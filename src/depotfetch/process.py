"""
Process control for restarting Steam.

Callers depend only on the ProcessController interface; the platform specific
commands live in its implementations.
"""

import os
import shutil
import subprocess
import time
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from depotfetch.constants import (
    STEAM_PROCESS_NAME_POSIX,
    STEAM_PROCESS_NAME_WINDOWS,
    STEAM_RESTART_DELAY,
)
from depotfetch.exceptions import ProcessControlError
from depotfetch.log_utils import logger
from depotfetch.setup_config import get_platform, steam_config_candidates


class ProcessController(ABC):
    """Stop and start external programs."""

    steam_process_name: str = STEAM_PROCESS_NAME_POSIX

    @abstractmethod
    def terminate_process(self, name: str) -> bool:
        """
        Terminate every process called name.

        Returns:
            bool: True if a process was terminated, False if none was running.

        Raises:
            ProcessControlError: The termination command could not be run.
        """

    @abstractmethod
    def launch_process(self, path: str, args: Sequence[str] = ()) -> None:
        """
        Start path with args without waiting for it.

        Raises:
            ProcessControlError: The program could not be started.
        """

    def _run(self, command: List[str]) -> subprocess.CompletedProcess:
        logger.debug(f"Running: {' '.join(command)}")
        try:
            return subprocess.run(
                command, capture_output=True, text=True, check=False
            )
        except OSError as e:
            raise ProcessControlError(
                f"Could not run {command[0]}", details=str(e)
            ) from e

    def _spawn(self, command: List[str]) -> None:
        logger.debug(f"Launching: {' '.join(command)}")
        try:
            subprocess.Popen(
                command,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=os.name != "nt",
            )
        except OSError as e:
            raise ProcessControlError(
                f"Could not launch {command[0]}", details=str(e)
            ) from e


class WindowsProcessController(ProcessController):
    steam_process_name = STEAM_PROCESS_NAME_WINDOWS

    def terminate_process(self, name: str) -> bool:
        result = self._run(["taskkill", "/F", "/IM", name])
        # taskkill exits with 128 when no matching process exists
        return result.returncode == 0

    def launch_process(self, path: str, args: Sequence[str] = ()) -> None:
        self._spawn([path, *args])


class PosixProcessController(ProcessController):
    steam_process_name = STEAM_PROCESS_NAME_POSIX

    def terminate_process(self, name: str) -> bool:
        result = self._run(["pkill", "-x", name])
        if result.returncode > 1:
            raise ProcessControlError(
                f"pkill failed for {name}", details=result.stderr.strip() or None
            )
        return result.returncode == 0

    def launch_process(self, path: str, args: Sequence[str] = ()) -> None:
        self._spawn([path, *args])


def get_process_controller() -> ProcessController:
    """Return the controller for the running platform."""
    if get_platform() == "windows":
        return WindowsProcessController()
    return PosixProcessController()


def find_steam_executable() -> Optional[str]:
    """
    Locate the Steam executable.

    On Windows the install directory next to each known config directory is
    checked for steam.exe; elsewhere `steam` is looked up on PATH.
    """
    if get_platform() == "windows":
        for config_dir in steam_config_candidates():
            candidate = os.path.join(os.path.dirname(config_dir), STEAM_PROCESS_NAME_WINDOWS)
            if os.path.isfile(candidate):
                return candidate
        return None
    return shutil.which(STEAM_PROCESS_NAME_POSIX)


def restart_steam(
    controller: Optional[ProcessController] = None,
    steam_executable: Optional[str] = None,
    delay: float = STEAM_RESTART_DELAY,
) -> None:
    """
    Stop Steam, wait for it to exit and start it again.

    Raises:
        ProcessControlError: Steam could not be found or started.
    """
    controller = controller or get_process_controller()
    executable = steam_executable or find_steam_executable()
    if not executable:
        raise ProcessControlError("Could not find the Steam executable")

    if controller.terminate_process(controller.steam_process_name):
        logger.info("Steam stopped; waiting before relaunch")
        time.sleep(delay)
    else:
        logger.info("Steam was not running")

    controller.launch_process(executable)
    logger.info(f"Started Steam from {executable}")
