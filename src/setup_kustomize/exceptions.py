"""
Custom exceptions for setup-kustomize.

Every failure that ends an installation run is raised as a subclass of
SetupKustomizeError. Each class carries an ErrorKind so callers can branch on
the category without matching on message text.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Categories of installation failures."""

    UNRESOLVED_VERSION = "unresolved_version"
    UNSUPPORTED_PLATFORM = "unsupported_platform"
    TRANSPORT_FAILURE = "transport_failure"
    EXTRACTION_FAILURE = "extraction_failure"
    CONFIGURATION = "configuration"


class SetupKustomizeError(Exception):
    """
    Base exception for all setup-kustomize errors.

    All custom exceptions should inherit from this class to allow for easy
    catching of all application-specific errors.
    """

    kind: ErrorKind = ErrorKind.CONFIGURATION

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
            return f"{self.message}: {self.details}"
        return self.message


class ConfigurationError(SetupKustomizeError):
    """Exception raised when the configuration file is unreadable or invalid."""

    kind = ErrorKind.CONFIGURATION


# =============================================================================
# Resolution Errors
# =============================================================================


class UnresolvedVersionError(SetupKustomizeError):
    """
    Exception raised when no published version satisfies a specifier.

    Attributes:
        version_spec: The specifier as supplied by the caller.
        os_id: Host operating system id the lookup ran for.
        arch: Host architecture id the lookup ran for.
    """

    kind = ErrorKind.UNRESOLVED_VERSION

    def __init__(
        self,
        message: str,
        version_spec: str | None = None,
        os_id: str | None = None,
        arch: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.version_spec = version_spec
        self.os_id = os_id
        self.arch = arch


class UnsupportedPlatformError(SetupKustomizeError):
    """
    Exception raised when the host OS or architecture has no known asset naming.

    Attributes:
        os_id: Host operating system id.
        arch: Host architecture id.
        version: The version being resolved, when the rejection is version-specific.
    """

    kind = ErrorKind.UNSUPPORTED_PLATFORM

    def __init__(
        self,
        message: str,
        os_id: str | None = None,
        arch: str | None = None,
        version: str | None = None,
    ) -> None:
        super().__init__(message)
        self.os_id = os_id
        self.arch = arch
        self.version = version


# =============================================================================
# Transport and Archive Errors
# =============================================================================


class TransportError(SetupKustomizeError):
    """
    Exception raised when the release listing or a download fails.

    Attributes:
        url: The URL being requested when the error occurred.
        status_code: HTTP status code, when the server answered.
        version: The version being downloaded, when known.
    """

    kind = ErrorKind.TRANSPORT_FAILURE

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        version: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code
        self.version = version


class ExtractionError(SetupKustomizeError):
    """
    Exception raised when a downloaded archive cannot be unpacked or lacks the binary.

    Attributes:
        archive_path: Path to the archive that failed.
    """

    kind = ErrorKind.EXTRACTION_FAILURE

    def __init__(
        self,
        message: str,
        archive_path: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.archive_path = archive_path
