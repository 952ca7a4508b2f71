"""Exception hierarchy for fscache.

All exceptions inherit from :class:`FSCacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`fscache.exit_codes`.
The CLI entry point :func:`fscache.app.main` catches ``FSCacheError`` and
exits with the appropriate code.

Inside a running server none of these reach the request pipeline: the
store turns :class:`CodecError` into a miss and logs filesystem failures.

Subclass hierarchy::

    FSCacheError (exit 1)
    +-- ConfigError   (exit 78)
    +-- CodecError    (exit 1)
    +-- StorageError  (exit 74)
"""

from fscache.exit_codes import (
    EXIT_CONFIG_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_IO_ERROR,
)


class FSCacheError(Exception):
    """Base exception for all fscache errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(FSCacheError):
    """Raised for unparsable or invalid settings. Fatal at startup."""

    exit_code = EXIT_CONFIG_ERROR


class CodecError(FSCacheError):
    """Raised when a stored body or metadata record cannot be decoded."""


class StorageError(FSCacheError):
    """Raised by CLI commands when the cache directory cannot be read or written."""

    exit_code = EXIT_IO_ERROR
