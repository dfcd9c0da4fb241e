"""Persistent configuration: directories, the global config, client profiles.

Files live under the XDG base directories on Linux and the BSDs
(``$XDG_CONFIG_HOME/grantflow`` and ``$XDG_DATA_HOME/grantflow``) and under
``~/.grantflow`` everywhere else::

    <config dir>/config.json            GlobalConfig
    <config dir>/profiles/<name>.json   ClientProfile, one per client
    <data dir>/logs/crash-*.log         written by grantflow.app

Profiles store credential *sources* such as ``env:GITHUB_CLIENT_SECRET``;
:func:`resolve_credential` turns a source into the value when a client is
built. Issued tokens are never written to disk.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import re
import sys
import tempfile
from pathlib import Path
from typing import Callable, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from grantflow.client import Client
from grantflow.exceptions import ConfigError
from grantflow.models import ClientProfile, GlobalConfig
from grantflow.strategy.registry import StrategyRegistry, create_default_registry

_APP_NAME = "grantflow"
_PROFILE_ENV_VAR = "GRANTFLOW_PROFILE"
_PROFILE_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")

_ModelT = TypeVar("_ModelT", bound=BaseModel)


# --- Directories ---


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(xdg_var: str, xdg_default: Path, fallback: Path) -> Path:
    if _is_xdg_platform():
        base = Path(os.environ.get(xdg_var) or xdg_default)
        path = base / _APP_NAME
    else:
        path = fallback
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Return (and create) the directory holding ``config.json`` and ``profiles/``."""
    home = Path.home()
    return _app_dir("XDG_CONFIG_HOME", home / ".config", home / f".{_APP_NAME}")


def get_data_dir() -> Path:
    """Return (and create) the directory for crash logs."""
    home = Path.home()
    return _app_dir(
        "XDG_DATA_HOME", home / ".local" / "share", home / f".{_APP_NAME}" / "logs"
    )


def get_profiles_dir() -> Path:
    path = get_config_dir() / "profiles"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- JSON files ---


def _atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data* through a temp file in the same directory.

    Readers see either the old or the new content. On failure the temp file
    is removed and *path* is left as it was.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
    ) as tmp:
        tmp_path = Path(tmp.name)
        try:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        except BaseException:
            tmp.close()
            tmp_path.unlink(missing_ok=True)
            raise
    try:
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def _write_model(path: Path, model: BaseModel) -> None:
    _atomic_write(path, json.dumps(model.model_dump(mode="json"), indent=2) + "\n")


def _read_model(path: Path, model: type[_ModelT], label: str) -> _ModelT:
    try:
        return model.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ConfigError(f"Invalid {label} at {path}: {exc}") from exc


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / "config.json"


def load_global_config() -> GlobalConfig:
    """Load ``config.json``; a missing file yields the defaults.

    Raises:
        ConfigError: If the file is not valid JSON or not a valid config.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    return _read_model(path, GlobalConfig, "global config")


def save_global_config(config: GlobalConfig) -> None:
    _write_model(_global_config_path(), config)


# --- Profiles ---


def _profile_path(name: str) -> Path:
    if not _PROFILE_NAME_RE.match(name):
        raise ConfigError(
            f"Invalid profile name {name!r}: use letters, digits, '.', '_' and '-'"
        )
    return get_profiles_dir() / f"{name}.json"


def list_profiles() -> list[str]:
    """Return the names of all stored profiles, sorted."""
    return sorted(p.stem for p in get_profiles_dir().glob("*.json") if p.is_file())


def profile_exists(name: str) -> bool:
    return _profile_path(name).is_file()


def load_profile(name: str) -> ClientProfile:
    """Load the profile called *name*.

    Raises:
        ConfigError: If it does not exist or its file is invalid.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    return _read_model(path, ClientProfile, f"profile '{name}'")


def save_profile(profile: ClientProfile) -> None:
    """Write *profile* to ``profiles/<profile.name>.json``, replacing any existing file."""
    _write_model(_profile_path(profile.name), profile)


def delete_profile(name: str) -> None:
    """Remove the profile called *name*.

    Raises:
        ConfigError: If it does not exist.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    path.unlink()


def resolve_profile(cli_profile: Optional[str] = None) -> ClientProfile:
    """Pick and load the profile a command should use.

    The first of these that names a profile wins:

    1. *cli_profile* (``--profile``)
    2. ``GRANTFLOW_PROFILE``
    3. ``default_profile`` in the global config
    4. the only stored profile, when ``auto_select_single_profile`` is set

    Raises:
        ConfigError: If nothing names a profile or the profile cannot be loaded.
    """
    global_cfg = load_global_config()
    name = cli_profile or os.environ.get(_PROFILE_ENV_VAR) or global_cfg.default_profile

    if not name and global_cfg.auto_select_single_profile:
        stored = list_profiles()
        if len(stored) == 1:
            name = stored[0]

    if not name:
        raise ConfigError(
            "No profile selected. Pass --profile, set GRANTFLOW_PROFILE, "
            "or create one with 'grantflow profile add'."
        )
    return load_profile(name)


# --- Credentials ---


def _from_env(var_name: str) -> str:
    value = os.environ.get(var_name)
    if value is None:
        raise ConfigError(f"Environment variable '{var_name}' is not set (source: env:{var_name})")
    return value


def _from_file(raw_path: str) -> str:
    path = Path(raw_path).expanduser()
    if not path.is_file():
        raise ConfigError(f"Credential file not found: {path} (source: file:{raw_path})")
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc


_CREDENTIAL_PREFIXES: dict[str, Callable[[str], str]] = {
    "env:": _from_env,
    "file:": _from_file,
    "literal:": lambda value: value,
}


def resolve_credential(source: str) -> str:
    """Turn a credential source descriptor into its value.

    ``env:VAR``
        The environment variable ``VAR``.
    ``file:PATH``
        The file's content without surrounding whitespace; ``~`` is expanded.
    ``prompt``
        Asked for on the terminal without echo.
    ``literal:VALUE``
        ``VALUE`` itself. Meant for client ids, which are not secret.

    Raises:
        ConfigError: If the source is malformed or cannot be read.
    """
    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError("Cannot prompt for credentials: stdin is not a TTY (source: prompt)")
        return getpass.getpass("Enter credential: ")

    for prefix, reader in _CREDENTIAL_PREFIXES.items():
        if source.startswith(prefix):
            return reader(source[len(prefix):])
    raise ConfigError(f"Unknown credential source format: {source}")


# --- Clients ---


def build_client(
    profile: ClientProfile,
    registry: Optional[StrategyRegistry] = None,
) -> Client:
    """Create a fresh :class:`~grantflow.client.Client` for one flow of *profile*.

    Credential sources are resolved on every call, so a rotated secret is
    picked up without editing the profile.

    Raises:
        ConfigError: If a credential cannot be resolved or the profile's
            strategy is not registered.
    """
    if registry is None:
        registry = create_default_registry()
    strategy = registry.get(profile.strategy)

    client_secret = None
    if profile.client_secret_source:
        client_secret = resolve_credential(profile.client_secret_source)

    return Client(
        client_id=resolve_credential(profile.client_id_source),
        client_secret=client_secret,
        redirect_uri=profile.redirect_uri,
        site=profile.site,
        authorize_url=profile.authorize_url,
        token_url=profile.token_url,
        strategy=strategy,
        pkce=profile.pkce,
        timeout=profile.request.timeout,
    )
