"""Shared test fixtures for grantflow.

Provides reusable fixtures for isolated config environments, sample
profiles and clients, token endpoint responses, and output state. These
fixtures are automatically discovered by pytest and available to all test
modules without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from grantflow.client import Client
from grantflow.models import ClientProfile
from grantflow.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time; CliRunner swaps those streams per invocation.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points the XDG directories at subdirectories of tmp_path, clears
    GRANTFLOW_* environment variables, and changes the working directory
    to tmp_path.
    """
    monkeypatch.setattr("grantflow.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("GRANTFLOW_PROFILE", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Profiles and clients
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_profile() -> ClientProfile:
    """A confidential-client profile using literal credentials."""
    return ClientProfile(
        name="example",
        site="https://auth.example.com",
        redirect_uri="https://app/cb",
        client_id_source="literal:abc",
        client_secret_source="literal:s3cret",
        scopes=["read", "write"],
    )


@pytest.fixture
def make_client() -> Callable[..., Client]:
    """Factory for clients with the identity used throughout the tests."""

    def _make(**kwargs: Any) -> Client:
        defaults: dict[str, Any] = {
            "client_id": "abc",
            "redirect_uri": "https://app/cb",
            "site": "https://auth.example.com",
        }
        defaults.update(kwargs)
        return Client(**defaults)

    return _make


# ---------------------------------------------------------------------------
# Token endpoint responses
# ---------------------------------------------------------------------------


def _build_token_response(
    status_code: int = 200,
    json: Any = None,  # noqa: A002
    text: str | None = None,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    """Build a real :class:`httpx.Response` as returned by ``httpx.post``."""
    request = httpx.Request("POST", "https://auth.example.com/oauth/token")
    if json is not None:
        return httpx.Response(status_code, json=json, request=request)
    return httpx.Response(status_code, text=text or "", headers=headers, request=request)


@pytest.fixture
def make_token_response() -> Callable[..., httpx.Response]:
    return _build_token_response


@pytest.fixture
def token_payload() -> dict[str, Any]:
    return {
        "access_token": "at-123",
        "token_type": "bearer",
        "expires_in": 3600,
        "refresh_token": "rt-456",
        "scope": "read write",
    }


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()
