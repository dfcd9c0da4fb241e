"""Process exit codes of the ``grantflow`` CLI.

Each :class:`~grantflow.exceptions.GrantflowError` subclass carries one of
these, so a script can tell a rejected grant (3) from an unreachable token
endpoint (6) without parsing stderr::

    grantflow --quiet authorize login --paste > token.json
    case $? in
      3) echo "authorization server refused the grant" ;;
      6) echo "token endpoint unreachable" ;;
    esac
"""

EXIT_SUCCESS = 0

EXIT_GENERIC_FAILURE = 1
"""Unclassified failure, including configuration problems."""

EXIT_INVALID_USAGE = 2
"""Bad arguments, an unknown profile name, or a prompt needed under ``--no-input``."""

EXIT_OAUTH_FAILURE = 3
"""The flow itself failed: error callback, ``state`` mismatch, missing code, rejected token request."""

EXIT_CONNECTION_ERROR = 6
"""The token endpoint could not be reached (DNS, refused connection, timeout)."""

EXIT_INTERRUPTED = 130
"""Cancelled with Ctrl-C."""
