"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to one :class:`~playfetch.exceptions.ErrorKind` and is
referenced by the corresponding :class:`~playfetch.exceptions.PlayfetchError`
subclass, so shell wrappers can tell failure classes apart without parsing
stderr.

Example::

    $ playfetch details com.example.app
    $ echo $?
    3   # EXIT_LOGIN_FAILURE -- credentials were rejected
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing configuration."""

EXIT_LOGIN_FAILURE = 3
"""The auth endpoint rejected the credentials or returned no token."""

EXIT_REQUEST_ERROR = 5
"""The API endpoint returned a non-200 status or could not be reached."""

EXIT_DECODE_ERROR = 7
"""The binary response envelope could not be decoded."""

EXIT_CONTRACT_VIOLATION = 8
"""A precondition failed or the server response had an unexpected shape."""
