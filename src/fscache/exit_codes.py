"""Numeric process exit codes for the ``fscache`` maintenance CLI.

Values follow the BSD ``sysexits.h`` conventions where one exists so that
service managers and shell wrappers can tell a bad configuration apart
from a filesystem failure without parsing stderr.

Example::

    $ CACHE_TTL=soon fscache sweep
    $ echo $?
    78   # EXIT_CONFIG_ERROR -- CACHE_TTL is not a number
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_NOT_FOUND = 4
"""No cache entry exists for the requested URL."""

EXIT_IO_ERROR = 74
"""A filesystem operation on the cache directory failed."""

EXIT_CONFIG_ERROR = 78
"""The configuration could not be parsed or validated."""
