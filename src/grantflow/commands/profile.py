"""Profile commands -- manage stored OAuth2 client registrations.

Provides the ``grantflow profile`` sub-command group. A profile records
the authorization server endpoints and the *sources* of the client
credentials; secrets themselves are resolved at use time and never stored.

Typical workflow::

    grantflow profile add github --site https://github.com \\
        --authorize-url /login/oauth/authorize \\
        --token-url /login/oauth/access_token \\
        --client-id-source env:GITHUB_CLIENT_ID \\
        --client-secret-source env:GITHUB_CLIENT_SECRET \\
        --scope read:user
    grantflow profile list
    grantflow --profile github authorize login
"""

from __future__ import annotations

from typing import Optional

import typer

from grantflow.output import error, format_response, get_output, info, success, suggest


profile_app = typer.Typer(no_args_is_help=True)


@profile_app.command("add")
def profile_add(
    name: str = typer.Argument(help="Profile name."),
    site: str = typer.Option(..., "--site", help="Authorization server base URL."),
    client_id_source: str = typer.Option(
        ...,
        "--client-id-source",
        help="Client id source: env:VAR, file:/path, prompt, literal:VALUE.",
    ),
    client_secret_source: Optional[str] = typer.Option(
        None,
        "--client-secret-source",
        help="Client secret source (omit for public clients).",
    ),
    redirect_uri: str = typer.Option(
        "http://127.0.0.1:8765/callback", "--redirect-uri", help="Registered redirect URI."
    ),
    authorize_url: str = typer.Option(
        "/oauth/authorize", "--authorize-url", help="Authorization endpoint path or URL."
    ),
    token_url: str = typer.Option(
        "/oauth/token", "--token-url", help="Token endpoint path or URL."
    ),
    scopes: Optional[list[str]] = typer.Option(
        None, "--scope", help="Scope to request (repeatable)."
    ),
    no_pkce: bool = typer.Option(False, "--no-pkce", help="Disable PKCE."),
    overwrite: bool = typer.Option(
        False, "--overwrite", help="Replace an existing profile of the same name."
    ),
) -> None:
    """Create a client profile.

    Raises:
        typer.Exit: With code 2 if the profile already exists and
            ``--overwrite`` was not given.

    Example::

        grantflow profile add local --site http://localhost:9000 \\
            --client-id-source literal:my-app
    """
    from grantflow.config import profile_exists, save_profile
    from grantflow.models import ClientProfile

    if profile_exists(name) and not overwrite:
        error(f"Profile '{name}' already exists.")
        suggest("Pass --overwrite to replace it.")
        raise typer.Exit(code=2)

    profile = ClientProfile(
        name=name,
        site=site,
        authorize_url=authorize_url,
        token_url=token_url,
        redirect_uri=redirect_uri,
        client_id_source=client_id_source,
        client_secret_source=client_secret_source,
        scopes=scopes or [],
        pkce=not no_pkce,
    )
    save_profile(profile)
    success(f'Profile "{name}" saved.')
    suggest(f"Log in: grantflow --profile {name} authorize login")


@profile_app.command("list")
def profile_list() -> None:
    """List stored profiles."""
    from grantflow.config import list_profiles, load_profile

    names = list_profiles()
    if not names:
        info("No profiles configured.")
        suggest("Create one: grantflow profile add NAME --site URL --client-id-source SOURCE")
        return

    rows: list[list[str]] = []
    for name in names:
        profile = load_profile(name)
        rows.append([name, profile.site, profile.strategy, "yes" if profile.pkce else "no"])
    get_output().print_table(["Name", "Site", "Strategy", "PKCE"], rows, title="Profiles")


@profile_app.command("show")
def profile_show(
    name: str = typer.Argument(help="Profile name."),
) -> None:
    """Show a profile's stored configuration."""
    from grantflow.config import load_profile
    from grantflow.exceptions import ConfigError

    try:
        profile = load_profile(name)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=2) from None
    format_response(profile.model_dump(mode="json"))


@profile_app.command("remove")
def profile_remove(
    ctx: typer.Context,
    name: str = typer.Argument(help="Profile name."),
) -> None:
    """Delete a profile. Asks for confirmation unless ``--force`` is active."""
    from grantflow.config import delete_profile
    from grantflow.exceptions import ConfigError

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force and not typer.confirm(f"Remove profile '{name}'?"):
        info("Cancelled.")
        raise typer.Exit()

    try:
        delete_profile(name)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=2) from None
    success(f'Profile "{name}" removed.')
