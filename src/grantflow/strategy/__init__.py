"""Pluggable OAuth2 grant strategies.

The main entry points are:

- :class:`Strategy` -- abstract base class every grant type implements.
- :class:`AuthCode` -- the authorization code grant with optional PKCE.
- :class:`StrategyRegistry` / :func:`create_default_registry` -- lookup of
  strategies by the name stored in a client profile.

Typical usage::

    from grantflow.client import Client
    from grantflow.strategy import AuthCode

    client = Client(client_id="abc", redirect_uri="https://app/cb",
                    site="https://auth.example.com", strategy=AuthCode())
    url = client.authorize_url({"scope": "read"})
"""

from grantflow.strategy.auth_code import AuthCode
from grantflow.strategy.base import Strategy
from grantflow.strategy.registry import StrategyRegistry, create_default_registry

__all__ = [
    "AuthCode",
    "Strategy",
    "StrategyRegistry",
    "create_default_registry",
]
