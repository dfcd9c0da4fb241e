"""The OAuth2 client: per-flow request state plus the two HTTP-facing steps.

A :class:`Client` carries the client's identity (``client_id``,
``client_secret``, ``redirect_uri``), the authorization server endpoints,
and the mutable state of the request being assembled:

* ``params`` -- the query string (authorization request) or form body
  (token request).
* ``private`` -- values that must survive between the two phases of a flow
  but are never sent, such as the PKCE ``code_verifier``.
* ``headers`` -- ``(name, value)`` pairs for the token request.

Grant strategies (:mod:`grantflow.strategy`) shape that state through the
small mutator API below; :meth:`Client.authorize_url` and
:meth:`Client.get_token` run the strategy and then render the URL or send
the token request with ``httpx``.

A client is meant for one flow and one thread. Create a new one per login
attempt; the verifier stashed by the authorization phase is only found
again on the same instance.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Mapping, Optional, Sequence
from urllib.parse import parse_qsl, urlencode

import httpx
from pydantic import ValidationError

from grantflow.exceptions import ConnectionError_, MissingParameterError, TokenError
from grantflow.models import AccessToken
from grantflow.strategy.auth_code import AuthCode
from grantflow.strategy.base import Strategy

logger = logging.getLogger(__name__)


class Client:
    """OAuth2 client state for a single flow.

    Args:
        client_id: The client identifier issued by the authorization server.
        redirect_uri: Where the authorization server sends the user back.
        client_secret: Secret of a confidential client. ``None`` for public
            clients, which then skip HTTP Basic authentication.
        site: Base URL that relative endpoint paths are appended to.
        authorize_url: Authorization endpoint, relative to *site* when it
            starts with ``/``, otherwise used as an absolute URL.
        token_url: Token endpoint, resolved like *authorize_url*.
        strategy: Grant strategy. Defaults to :class:`~grantflow.strategy.AuthCode`.
        pkce: Whether the strategy should use PKCE for this flow.
        params: Initial request parameters.
        headers: Initial request headers.
        timeout: Timeout in seconds for the token request.
    """

    def __init__(
        self,
        client_id: str,
        redirect_uri: str = "",
        client_secret: Optional[str] = None,
        site: str = "",
        authorize_url: str = "/oauth/authorize",
        token_url: str = "/oauth/token",
        strategy: Optional[Strategy] = None,
        pkce: bool = False,
        params: Optional[Mapping[str, str]] = None,
        headers: Optional[Sequence[tuple[str, str]]] = None,
        timeout: float = 30.0,
    ) -> None:
        self.client_id = client_id
        self.redirect_uri = redirect_uri
        self.client_secret = client_secret
        self.site = site
        self.authorize_endpoint = authorize_url
        self.token_endpoint = token_url
        self.strategy: Strategy = strategy if strategy is not None else AuthCode()
        self.pkce = pkce
        self.params: dict[str, str] = dict(params or {})
        self.private: dict[str, str] = {}
        self.headers: list[tuple[str, str]] = []
        self.timeout = timeout
        self.token: Optional[AccessToken] = None
        if headers:
            self.put_headers(headers)

    def __repr__(self) -> str:
        # Secrets and private values stay out of reprs and log lines.
        return (
            f"Client(client_id={self.client_id!r}, site={self.site!r}, "
            f"strategy={self.strategy.name!r}, pkce={self.pkce!r})"
        )

    # ------------------------------------------------------------------ #
    # Parameters
    # ------------------------------------------------------------------ #

    def put_param(self, key: str, value: str) -> Client:
        """Set request parameter *key* to *value*."""
        self.params[key] = value
        return self

    def delete_param(self, key: str) -> Client:
        """Remove request parameter *key*; a missing key is not an error."""
        self.params.pop(key, None)
        return self

    def merge_params(self, params: Mapping[str, str]) -> Client:
        """Merge *params* into the request parameters, overwriting on conflict."""
        for key, value in params.items():
            self.put_param(key, value)
        return self

    # ------------------------------------------------------------------ #
    # Private store
    # ------------------------------------------------------------------ #

    def put_private(self, key: str, value: str) -> Client:
        """Stash *value* under *key* without ever sending it."""
        self.private[key] = value
        return self

    def get_private(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Return the private value stored under *key*, or *default*."""
        return self.private.get(key, default)

    def pop_private(self, key: str) -> Optional[str]:
        """Remove and return the private value stored under *key*."""
        return self.private.pop(key, None)

    def put_param_from_private(self, key: str, consume: bool = False) -> Client:
        """Copy the private value *key* into the request parameters.

        Args:
            key: Name used both in the private store and in ``params``.
            consume: Remove the value from the private store afterwards.

        Raises:
            MissingParameterError: If nothing is stored under *key*.
        """
        value = self.pop_private(key) if consume else self.get_private(key)
        if value is None:
            raise MissingParameterError(f"No private value stored under `{key}`")
        return self.put_param(key, value)

    # ------------------------------------------------------------------ #
    # Headers and authentication
    # ------------------------------------------------------------------ #

    def put_header(self, name: str, value: str) -> Client:
        """Set header *name* (lower-cased), replacing any previous value."""
        name = name.lower()
        self.headers = [(k, v) for k, v in self.headers if k != name]
        self.headers.append((name, value))
        return self

    def put_headers(self, headers: Sequence[tuple[str, str]]) -> Client:
        """Set every ``(name, value)`` pair of *headers*, in order."""
        for name, value in headers:
            self.put_header(name, value)
        return self

    def basic_auth(self) -> Client:
        """Authenticate the request with HTTP Basic ``client_id:client_secret``.

        Public clients (no ``client_secret``) are left untouched; they
        identify themselves with the ``client_id`` body parameter alone.
        """
        if self.client_secret is None:
            logger.debug("No client secret for %s, skipping Basic auth", self.client_id)
            return self
        raw = f"{self.client_id}:{self.client_secret}"
        encoded = base64.b64encode(raw.encode("utf-8")).decode("ascii")
        return self.put_header("authorization", f"Basic {encoded}")

    # ------------------------------------------------------------------ #
    # Flow steps
    # ------------------------------------------------------------------ #

    def authorize_url(self, params: Optional[Mapping[str, str]] = None) -> str:
        """Run the strategy's authorization phase and render the request URL.

        Args:
            params: Extra query parameters such as ``scope`` and ``state``.

        Returns:
            The authorization endpoint URL with the urlencoded query string.
        """
        self.strategy.authorize_url(self, params or {})
        return f"{self.endpoint(self.authorize_endpoint)}?{urlencode(self.params)}"

    def get_token(
        self,
        params: Optional[Mapping[str, str]] = None,
        headers: Optional[Sequence[tuple[str, str]]] = None,
    ) -> AccessToken:
        """Run the strategy's token phase and POST the request.

        On success the parsed token is stored on :attr:`token` and the
        request ``params`` and ``headers`` are cleared, so the client does
        not resend the consumed code.

        Args:
            params: Extra body parameters, usually ``{"code": ...}``.
            headers: Extra request headers.

        Returns:
            The :class:`~grantflow.models.AccessToken` from the response.

        Raises:
            MissingParameterError: If the strategy lacks a required value.
            ConnectionError_: If the token endpoint cannot be reached.
            TokenError: If the server rejects the request or the response
                carries no usable ``access_token``.
        """
        self.strategy.get_token(self, params or {}, headers or [])
        url = self.endpoint(self.token_endpoint)
        request_headers = {"accept": "application/json"}
        request_headers.update(self.headers)

        logger.debug("POST %s (grant_type=%s)", url, self.params.get("grant_type"))
        try:
            response = httpx.post(
                url,
                data=self.params,
                headers=request_headers,
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            raise ConnectionError_(f"Token request to {url} failed: {exc}") from exc

        token = self._parse_token_response(response)
        self.token = token
        self.params = {}
        self.headers = []
        logger.info("Obtained %s token for client %s", token.token_type, self.client_id)
        return token

    def endpoint(self, path: str) -> str:
        """Resolve *path* against :attr:`site` when it is a relative path."""
        if path.startswith("/"):
            return self.site.rstrip("/") + path
        return path

    @staticmethod
    def _parse_token_response(response: httpx.Response) -> AccessToken:
        body = _decode_body(response)

        if response.status_code >= 400:
            error = body.get("error") if isinstance(body, dict) else None
            description = body.get("error_description") if isinstance(body, dict) else None
            message = f"Token request failed with status {response.status_code}"
            if error:
                message += f": {error}"
                if description:
                    message += f" ({description})"
            else:
                message += f": {response.text}"
            raise TokenError(message, error=error, status_code=response.status_code)

        # Some servers report grant errors with a 200 status.
        if isinstance(body, dict) and "error" in body and "access_token" not in body:
            raise TokenError(
                f"Token request failed: {body['error']}",
                error=body["error"],
                status_code=response.status_code,
            )

        if not isinstance(body, dict) or "access_token" not in body:
            raise TokenError(
                "Token response missing 'access_token' field",
                status_code=response.status_code,
            )
        try:
            return AccessToken.from_response(body)
        except (ValueError, TypeError, AttributeError, ValidationError) as exc:
            raise TokenError(
                f"Malformed token response: {exc}",
                status_code=response.status_code,
            ) from exc


def _decode_body(response: httpx.Response) -> Any:  # noqa: ANN401
    """Decode a token response body as JSON or form-urlencoded data."""
    content_type = response.headers.get("content-type", "")
    if "application/x-www-form-urlencoded" in content_type or "text/plain" in content_type:
        return dict(parse_qsl(response.text))
    try:
        return response.json()
    except ValueError:
        return response.text
