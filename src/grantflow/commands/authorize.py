"""Authorize commands -- run the authorization code flow for a profile.

Provides the ``grantflow authorize`` sub-command group:

* ``url`` prints the authorization request URL of the active profile.
  The PKCE verifier behind it lives only in this process, so the URL is
  for inspection, not for finishing a login later.
* ``login`` runs a whole flow in one process: it builds the URL with a
  random ``state``, sends the user to the browser, captures the redirect
  on a loopback ``redirect_uri`` (or asks for the pasted callback URL),
  checks the ``state``, and exchanges the code for a token.
"""

from __future__ import annotations

import secrets
import threading
import webbrowser
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Optional
from urllib.parse import parse_qs, urlparse

import typer

from grantflow.exceptions import (
    InvalidUsageError,
    MissingParameterError,
    OAuth2Error,
    StateMismatchError,
)
from grantflow.models import ClientProfile
from grantflow.output import debug, info, print_data, print_token, success


authorize_app = typer.Typer(no_args_is_help=True)

_LOOPBACK_HOSTS = ("127.0.0.1", "localhost")


def parse_param_options(values: Optional[list[str]]) -> dict[str, str]:
    """Turn repeated ``--param key=value`` options into a dict.

    Raises:
        InvalidUsageError: If a value has no ``=``.
    """
    params: dict[str, str] = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise InvalidUsageError(f"Expected --param key=value, got: {item!r}")
        params[key] = value
    return params


def is_callback_url(value: str) -> bool:
    """Whether a pasted value is a callback URL (or query) rather than a bare code."""
    value = value.strip()
    return "://" in value or value.startswith("?")


def parse_callback(value: str) -> dict[str, str]:
    """Extract the callback parameters from a pasted URL or bare code.

    A value that looks like a URL (or a ``?query``) is parsed for its query
    string; anything else is taken to be the authorization code itself.
    """
    value = value.strip()
    if not is_callback_url(value):
        return {"code": value}
    query = parse_qs(urlparse(value).query)
    return {key: values[0] for key, values in query.items() if values}


def check_callback(
    callback: dict[str, str], expected_state: str, require_state: bool = True
) -> str:
    """Validate callback parameters and return the authorization code.

    Args:
        callback: Query parameters of the redirect back to the client.
        expected_state: The ``state`` sent in the authorization request.
        require_state: ``False`` only for a bare pasted code, which has no
            ``state`` to compare.

    Raises:
        OAuth2Error: If the authorization server returned an ``error``.
        StateMismatchError: If the echoed ``state`` is missing or differs.
        MissingParameterError: If the callback carries no ``code``.
    """
    if "error" in callback:
        message = f"Authorization failed: {callback['error']}"
        if callback.get("error_description"):
            message += f" ({callback['error_description']})"
        raise OAuth2Error(message)

    if require_state:
        state = callback.get("state")
        if state is None or not secrets.compare_digest(
            state.encode("utf-8"), expected_state.encode("utf-8")
        ):
            raise StateMismatchError("State parameter mismatch - possible CSRF attack")

    code = callback.get("code")
    if not code:
        raise MissingParameterError("No authorization code received from callback")
    return code


def _authorization_params(profile: ClientProfile, cli_params: dict[str, str]) -> dict[str, str]:
    params = dict(profile.extra_params)
    if profile.scopes:
        params["scope"] = " ".join(profile.scopes)
    params.update(cli_params)
    return params


def _wait_for_callback(
    host: str, port: int, auth_url: str, open_browser: bool, timeout: float
) -> dict[str, str]:
    """Serve one request on the loopback redirect URI and return its query.

    The browser is opened in a daemon thread so the server is listening
    before the authorization server redirects back.

    Raises:
        MissingParameterError: If no callback arrives within *timeout*.
    """
    result: dict[str, str] = {}

    class CallbackHandler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:
            query = parse_qs(urlparse(self.path).query)
            result.update({key: values[0] for key, values in query.items() if values})

            if "error" in result:
                body = f"Authorization failed: {result['error']}"
            elif "code" in result:
                body = "Authorization complete. You can close this window."
            else:
                body = "No authorization code received."

            self.send_response(200)
            self.send_header("Content-Type", "text/html; charset=utf-8")
            self.end_headers()
            self.wfile.write(f"<html><body><h2>{body}</h2></body></html>".encode("utf-8"))

        def log_message(self, format: str, *args: Any) -> None:
            debug(f"callback: {format % args}")

    server = HTTPServer((host, port), CallbackHandler)
    server.timeout = timeout

    if open_browser:
        threading.Thread(target=webbrowser.open, args=(auth_url,), daemon=True).start()
    else:
        info("Open this URL in a browser to authorize:")
        print_data(auth_url)

    try:
        server.handle_request()
    finally:
        server.server_close()

    if not result:
        raise MissingParameterError(
            f"No callback received on {host}:{port} within {timeout:.0f} seconds"
        )
    return result


@authorize_app.command("url")
def authorize_url(
    ctx: typer.Context,
    param: Optional[list[str]] = typer.Option(
        None, "--param", help="Extra query parameter key=value (repeatable)."
    ),
) -> None:
    """Print the authorization request URL for the active profile.

    Example::

        grantflow --profile github authorize url --param prompt=consent
    """
    from grantflow.config import build_client, resolve_profile

    profile = resolve_profile(ctx.obj.get("profile") if ctx.obj else None)
    client = build_client(profile)
    params = _authorization_params(profile, parse_param_options(param))
    print_data(client.authorize_url(params))


@authorize_app.command("login")
def authorize_login(
    ctx: typer.Context,
    param: Optional[list[str]] = typer.Option(
        None, "--param", help="Extra query parameter key=value (repeatable)."
    ),
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Print the URL instead of opening a browser."
    ),
    paste: bool = typer.Option(
        False, "--paste", help="Paste the callback URL instead of listening for it."
    ),
    timeout: float = typer.Option(
        120.0, "--timeout", help="Seconds to wait for the loopback callback."
    ),
) -> None:
    """Run the authorization code flow and print the issued token.

    Listens on the profile's ``redirect_uri`` when it points at a loopback
    address with an explicit port; otherwise (or with ``--paste``) prompts
    for the callback URL the browser lands on.

    Raises:
        OAuth2Error: On an authorization error, a ``state`` mismatch, a
            missing code, or a rejected token request.

    Example::

        grantflow --profile github authorize login
        grantflow --profile prod authorize login --paste --no-browser
    """
    from grantflow.config import build_client, resolve_profile

    no_input = ctx.obj.get("no_input", False) if ctx.obj else False
    profile = resolve_profile(ctx.obj.get("profile") if ctx.obj else None)
    client = build_client(profile)

    state = secrets.token_urlsafe(24)
    params = _authorization_params(profile, parse_param_options(param))
    params["state"] = state
    auth_url = client.authorize_url(params)

    redirect = urlparse(client.redirect_uri)
    require_state = True
    if not paste and redirect.hostname in _LOOPBACK_HOSTS and redirect.port:
        callback = _wait_for_callback(
            redirect.hostname, redirect.port, auth_url, not no_browser, timeout
        )
    else:
        if no_input:
            raise InvalidUsageError(
                "Pasting the callback needs input; use a loopback redirect_uri "
                "or drop --no-input"
            )
        if no_browser:
            info("Open this URL in a browser to authorize:")
            print_data(auth_url)
        else:
            webbrowser.open(auth_url)
        pasted = typer.prompt("Paste the callback URL (or the code)")
        require_state = is_callback_url(pasted)
        callback = parse_callback(pasted)

    code = check_callback(callback, state, require_state)
    token = client.get_token({"code": code})
    success("Authorization code exchanged for an access token.")
    print_token(token)
