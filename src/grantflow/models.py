"""Canonical Pydantic models shared across all grantflow modules.

This is the single source of truth for persisted and parsed data shapes.
The models fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`OutputConfig`, :class:`GlobalConfig`,
    and :class:`ClientProfile`.

**Protocol models** -- produced from authorization server responses:
    :class:`AccessToken`.

The in-flight request state of a single flow (parameters, private values,
headers) is deliberately *not* a Pydantic model; it lives on
:class:`grantflow.client.Client`, which is never serialised.
"""

from __future__ import annotations

import time
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Configuration ---


class RequestConfig(BaseModel):
    """HTTP settings for the token exchange of a profile."""

    timeout: float = Field(default=30.0, description="Token request timeout in seconds")


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: Literal["auto", "json", "plain", "rich"] = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/grantflow/config.json``.

    Loaded and saved by :func:`~grantflow.config.load_global_config` and
    :func:`~grantflow.config.save_global_config`. See
    :func:`~grantflow.config.resolve_profile` for how ``default_profile``
    ranks against the ``--profile`` flag and ``GRANTFLOW_PROFILE``.
    """

    default_profile: Optional[str] = None
    auto_select_single_profile: bool = True
    log_level: str = Field(default="WARNING", description="Level for the grantflow logger")
    output: OutputConfig = Field(default_factory=OutputConfig)


class ClientProfile(BaseModel):
    """One OAuth2 client registration, stored under the ``profiles/`` directory.

    Holds the authorization server endpoints and *sources* for the client
    credentials (never the secrets themselves). Turned into a live
    :class:`~grantflow.client.Client` by :func:`grantflow.config.build_client`.

    Example::

        ClientProfile(
            name="github",
            site="https://github.com",
            authorize_url="/login/oauth/authorize",
            token_url="/login/oauth/access_token",
            redirect_uri="http://127.0.0.1:8765/callback",
            client_id_source="env:GITHUB_CLIENT_ID",
            client_secret_source="env:GITHUB_CLIENT_SECRET",
            scopes=["read:user"],
        )
    """

    model_config = ConfigDict(extra="allow")

    name: str
    site: str = Field(description="Base URL of the authorization server")
    authorize_url: str = Field(default="/oauth/authorize")
    token_url: str = Field(default="/oauth/token")
    redirect_uri: str = Field(default="http://127.0.0.1:8765/callback")
    client_id_source: str = Field(
        description="Credential source for the client id: env:VAR, file:/path, prompt, literal:VALUE"
    )
    client_secret_source: Optional[str] = Field(
        default=None, description="Credential source for the client secret (confidential clients)"
    )
    scopes: list[str] = Field(default_factory=list)
    pkce: bool = Field(default=True, description="Send a PKCE S256 challenge")
    strategy: str = Field(default="auth_code", description="Registered strategy name")
    extra_params: dict[str, str] = Field(
        default_factory=dict,
        description="Additional authorization request parameters (e.g. audience, prompt)",
    )
    request: RequestConfig = Field(default_factory=RequestConfig)


# --- Protocol ---


class AccessToken(BaseModel):
    """A token endpoint response (:rfc:`6749` section 5.1).

    Unknown response members (``scope``, ``id_token``, provider extras) are
    kept in :attr:`other_params`.
    """

    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"
    expires_at: Optional[float] = Field(
        default=None, description="Unix timestamp computed from expires_in"
    )
    other_params: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> AccessToken:
        """Build a token from the decoded JSON body of a token response.

        Raises:
            KeyError: If ``access_token`` is absent.
        """
        data = dict(data)
        access_token = data.pop("access_token")
        refresh_token = data.pop("refresh_token", None)
        token_type = data.pop("token_type", None) or "Bearer"
        expires_in = data.pop("expires_in", None)
        expires_at = None
        if expires_in is not None:
            expires_at = time.time() + float(expires_in)
        return cls(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type=_normalize_token_type(token_type),
            expires_at=expires_at,
            other_params=data,
        )

    def expires(self) -> bool:
        """Whether the server told us when this token expires."""
        return self.expires_at is not None

    def is_expired(self, leeway: float = 30.0) -> bool:
        """Return True once fewer than *leeway* seconds of validity remain."""
        if self.expires_at is None:
            return False
        return time.time() >= self.expires_at - leeway


def _normalize_token_type(token_type: str) -> str:
    # Some servers send "bearer"; RFC 6750 is case-insensitive here.
    if token_type.lower() == "bearer":
        return "Bearer"
    return token_type
