"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~dashauth.exceptions.DashauthError` subclass.
Shell wrappers can inspect the exit code to decide whether to re-run
``dashauth login`` without parsing stderr.

Example::

    $ dashauth refresh
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the refresh token was rejected
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or in the wrong state."""

EXIT_AUTH_FAILURE = 3
"""The identity provider rejected the request, or the login did not complete."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""
