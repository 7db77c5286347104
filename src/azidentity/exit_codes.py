"""Numeric process exit codes used by the ``azidentity`` command line.

Each constant maps to an error category and is referenced by the
corresponding :class:`~azidentity.exceptions.IdentityError` subclass.
Shell wrappers can inspect the exit code to tell an unavailable
credential apart from a rejected one without parsing stderr.

Example::

    $ azidentity token https://vault.azure.net/.default --credential cli
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- no credential could produce a token
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or configuration."""

EXIT_AUTH_FAILURE = 3
"""A credential was unavailable, or the identity provider rejected it."""

EXIT_ABORTED = 130
"""The operation was cancelled by the caller (Ctrl-C or an abort signal)."""
