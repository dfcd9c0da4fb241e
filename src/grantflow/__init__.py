"""grantflow -- an OAuth2 client with a pluggable Authorization Code + PKCE strategy.

The library core builds the two requests of the authorization code grant
(:rfc:`6749` section 4.1): the authorization URL the user is redirected to,
optionally carrying a PKCE challenge (:rfc:`7636`), and the token request
that trades the returned code for an access token.

Typical library usage::

    from grantflow.client import Client

    client = Client(client_id="abc", redirect_uri="https://app/cb",
                    site="https://auth.example.com", pkce=True)
    url = client.authorize_url({"scope": "read", "state": state})
    # ... user consents, the callback delivers ?code=...
    token = client.get_token({"code": code})

Modules:
    pkce: Code verifier generation and S256 challenge derivation.
    strategy: Grant strategy interface, the AuthCode strategy, and registry.
    client: Per-flow request state and the token HTTP exchange.
    models: Pydantic models for profiles, global config, and access tokens.
    config: XDG-aware profile storage and credential resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    app: Typer application and CLI entry point.
"""

__version__ = "0.1.0"
