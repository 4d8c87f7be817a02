"""
Custom exceptions for depotfetch.

Network failures are absorbed at the probe layer and never surface as
exceptions; the classes here cover local I/O, archives, configuration and the
cases where every source was exhausted.
"""


class DepotFetchError(Exception):
    """
    Base exception for all depotfetch errors.

    All custom exceptions in depotfetch should inherit from this class
    to allow for easy catching of all application-specific errors.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(DepotFetchError):
    """
    Exception raised when configuration is invalid or missing.

    This includes:
    - Configuration file parsing errors
    - Invalid repository entries
    - A Steam installation that cannot be located
    """

    pass


class ConfigFileError(ConfigurationError):
    """Exception raised when configuration file cannot be read or written."""

    pass


# =============================================================================
# File System Errors
# =============================================================================


class FileSystemError(DepotFetchError):
    """
    Exception raised for file system-related errors.

    This includes:
    - Permission denied errors
    - Disk full errors
    - File not found errors
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: str | None = None,
    ) -> None:
        """
        Initialize the file system exception.

        Args:
            message: The primary error message.
            path: The file path that caused the error.
            details: Optional additional context.
        """
        super().__init__(message, details)
        self.path = path


class LuaFileNotFoundError(FileSystemError):
    """Exception raised when no plugin .lua file matches an AppID."""

    pass


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(DepotFetchError):
    """
    Exception raised when validation fails.

    Attributes:
        field: The name of the field that failed validation.
        value: The value that failed validation.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field
        self.value = value


# =============================================================================
# Archive Errors
# =============================================================================


class ArchiveError(DepotFetchError):
    """
    Exception raised for archive-related errors.

    This includes:
    - Corrupted ZIP files
    - Extraction failures
    - Archives that lack the expected content
    """

    def __init__(
        self,
        message: str,
        archive_path: str | None = None,
        details: str | None = None,
    ) -> None:
        """
        Initialize the archive exception.

        Args:
            message: The primary error message.
            archive_path: Path to the problematic archive.
            details: Optional additional context.
        """
        super().__init__(message, details)
        self.archive_path = archive_path


class CorruptedArchiveError(ArchiveError):
    """Exception raised when an archive is corrupted or invalid."""

    pass


class ExtractionError(ArchiveError):
    """Exception raised when archive extraction fails."""

    pass


# =============================================================================
# Lookup Errors
# =============================================================================


class ResourceNotFoundError(DepotFetchError):
    """Exception raised when no source could supply the requested resource."""

    pass


# =============================================================================
# Process Control Errors
# =============================================================================


class ProcessControlError(DepotFetchError):
    """Exception raised when Steam cannot be stopped or launched."""

    pass
