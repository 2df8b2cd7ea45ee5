"""
srcbundle: Error taxonomy.

Every failure raised by the bundling core derives from BundleError and
carries an ErrorCode. Nothing in the core suppresses or retries these;
they propagate to whoever called SourceBundler.bundle().
"""
from typing import Optional

from srcbundle.core.constants import ErrorCode


class BundleError(Exception):
    """Base exception for all srcbundle errors."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INTERNAL_ERROR):
        """Initialize BundleError.

        Args:
            message: Error message
            error_code: Associated error code
        """
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class TraversalError(BundleError):
    """I/O failure while listing a directory or reading a file."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
    ):
        self.path = path
        super().__init__(message, error_code)


class PatternConfigError(BundleError):
    """Invalid glob or regex supplied as an include/exclude rule."""

    def __init__(self, message: str, pattern: object = None):
        self.pattern = pattern
        super().__init__(message, ErrorCode.INVALID_INPUT)


class ConfigResolutionError(BundleError):
    """A selected transform's configuration cannot be located or parsed."""


class ArtifactError(BundleError):
    """The artifact sink refused an entry."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.CONFLICT):
        super().__init__(message, error_code)


def error_code_for_os_error(exc: OSError) -> ErrorCode:
    """Map an OSError onto the closest ErrorCode."""
    if isinstance(exc, FileNotFoundError):
        return ErrorCode.NOT_FOUND
    if isinstance(exc, PermissionError):
        return ErrorCode.PERMISSION_DENIED
    return ErrorCode.INTERNAL_ERROR
