"""The Authorization Code strategy (:rfc:`6749` section 4.1) with optional PKCE.

The authorization code is obtained by using an authorization server as an
intermediary between the client and the resource owner. The client sends
the resource owner to the authorization server, which authenticates them,
obtains their consent, and redirects them back to the client's
``redirect_uri`` with a short-lived code. The client then trades that code
for an access token over a direct back-channel request.

With ``client.pkce`` enabled (:rfc:`7636`), the authorization request
carries an S256 ``code_challenge`` and the token request proves possession
of the matching ``code_verifier``. The verifier travels between the two
phases in the client's private store and is never part of the
authorization request.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Mapping, Sequence

from grantflow.exceptions import MissingParameterError
from grantflow.pkce import (
    PKCE_CHALLENGE_METHOD,
    derive_code_challenge,
    generate_code_verifier,
)
from grantflow.strategy.base import Strategy

if TYPE_CHECKING:
    from grantflow.client import Client

logger = logging.getLogger(__name__)

# Sent to the authorization endpoint only, never in the token request.
_AUTHORIZATION_ONLY_PARAMS = ("response_type", "state")


class AuthCode(Strategy):
    """Build authorization and token requests for the authorization code grant."""

    @property
    def name(self) -> str:
        return "auth_code"

    def authorize_url(self, client: Client, params: Mapping[str, str]) -> Client:
        """Set the authorization request parameters on *client*.

        ``response_type``, ``client_id`` and ``redirect_uri`` are set first,
        then the PKCE challenge when enabled, and *params* are merged last so
        caller-supplied values win on overlapping keys.
        """
        client.put_param("response_type", "code")
        client.put_param("client_id", client.client_id)
        client.put_param("redirect_uri", client.redirect_uri)
        self._handle_authorization_pkce(client)
        client.merge_params(params)
        logger.debug(
            "Built authorization request for client %s (pkce=%s)",
            client.client_id,
            client.pkce,
        )
        return client

    def get_token(
        self,
        client: Client,
        params: Mapping[str, str],
        headers: Sequence[tuple[str, str]],
    ) -> Client:
        """Set the token request parameters, Basic auth and headers on *client*.

        The ``code`` comes from *params* when present, otherwise from the
        ``code`` already stored in ``client.params`` (e.g. captured from the
        redirect callback). It is consumed here and not merged again.

        ``response_type`` and ``state`` left over from the authorization
        phase are removed. *client* is not modified when a required value is
        missing.

        Raises:
            MissingParameterError: If no ``code`` is available from either
                source, or if PKCE is enabled but no ``code_verifier`` was
                stashed by a prior :meth:`authorize_url` on this client.
        """
        remaining = dict(params)
        code = remaining.pop("code", None)
        if code is None:
            code = client.params.get("code")
        if code is None:
            raise MissingParameterError(
                f"Missing required key `code` for `{type(self).__name__}`"
            )
        if client.pkce and client.get_private("code_verifier") is None:
            raise MissingParameterError(
                f"Missing stashed `code_verifier` for `{type(self).__name__}`: "
                "build the authorization request on this client first"
            )

        for key in _AUTHORIZATION_ONLY_PARAMS:
            client.delete_param(key)
        client.put_param("code", code)
        client.put_param("grant_type", "authorization_code")
        client.put_param("client_id", client.client_id)
        client.put_param("redirect_uri", client.redirect_uri)
        self._handle_token_pkce(client)
        client.merge_params(remaining)
        client.basic_auth()
        client.put_headers(headers)
        logger.debug("Built token request for client %s", client.client_id)
        return client

    def _handle_authorization_pkce(self, client: Client) -> None:
        if not client.pkce:
            return
        verifier = generate_code_verifier()
        client.put_private("code_verifier", verifier)
        client.put_param("code_challenge", derive_code_challenge(verifier))
        client.put_param("code_challenge_method", PKCE_CHALLENGE_METHOD)

    def _handle_token_pkce(self, client: Client) -> None:
        if not client.pkce:
            return
        client.delete_param("code_challenge")
        client.delete_param("code_challenge_method")
        # Single use: the verifier leaves the private store here.
        client.put_param_from_private("code_verifier", consume=True)
