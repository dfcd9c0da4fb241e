"""Exception hierarchy for grantflow.

All exceptions inherit from :class:`GrantflowError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`grantflow.exit_codes`.
The top-level error handler in :func:`grantflow.app.main` catches
``GrantflowError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    GrantflowError (exit 1)
    +-- InvalidUsageError          (exit 2)
    +-- ConfigError                (exit 1)
    +-- ConnectionError_           (exit 6)
    +-- OAuth2Error                (exit 3)
        +-- MissingParameterError
        +-- TokenError
        +-- StateMismatchError
"""

from grantflow.exit_codes import (
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_OAUTH_FAILURE,
)


class GrantflowError(Exception):
    """Base exception for all grantflow errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`grantflow.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(GrantflowError):
    """Raised for invalid CLI arguments (e.g. a ``--param`` without ``=``)."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(GrantflowError):
    """Raised for configuration problems (missing profiles, invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE


class ConnectionError_(GrantflowError):
    """Raised on network-level failures reaching the token endpoint.

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class OAuth2Error(GrantflowError):
    """Base class for failures of the OAuth2 protocol exchange itself."""

    exit_code = EXIT_OAUTH_FAILURE


class MissingParameterError(OAuth2Error):
    """Raised when a strategy cannot build a request for lack of a required value.

    The authorization code strategy raises it when no ``code`` is available
    for the token exchange, and when a PKCE token exchange finds no
    ``code_verifier`` stashed by a prior authorization request on the same
    client.
    """


class TokenError(OAuth2Error):
    """Raised when the token endpoint rejects the request or answers with garbage.

    Args:
        message: Human-readable error description.
        error: The RFC 6749 §5.2 ``error`` code from the response body, if any.
        status_code: HTTP status of the token response, if one was received.
    """

    def __init__(
        self,
        message: str,
        error: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.error = error
        self.status_code = status_code


class StateMismatchError(OAuth2Error):
    """Raised when the ``state`` echoed on the callback differs from the one sent."""
