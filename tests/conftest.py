"""Shared test fixtures for usso.

Provides the token constants used across test modules, a sample token,
config isolation, and the Typer CLI runner.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from usso.models import SSOData
from usso.output import reset_output

TOKEN_NAME = "foo"
TOKEN_KEY = "abcs"
TOKEN_SECRET = "mTBgLxtTRUdfqewqgrqsvxlijbMWkPBajgKcoZCrDwv"
CONSUMER_KEY = "rfyzhdQ"
CONSUMER_SECRET = "rwDkQkkdfdfdeAslkmmxAOjOAT"


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
# Token fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sso_data() -> SSOData:
    """A token as issued by a local SSO server."""
    return SSOData(
        base_url="https://localhost",
        consumer_key=CONSUMER_KEY,
        consumer_secret=CONSUMER_SECRET,
        token_key=TOKEN_KEY,
        token_secret=TOKEN_SECRET,
        token_name=TOKEN_NAME,
    )


@pytest.fixture
def token_response() -> dict[str, str]:
    """A successful token endpoint response body, metadata included."""
    return {
        "date_updated": "2013-01-16 14:03:36",
        "date_created": "2013-01-16 14:03:36",
        "href": "/api/v2/tokens/" + TOKEN_KEY,
        "token_name": TOKEN_NAME,
        "token_key": TOKEN_KEY,
        "token_secret": TOKEN_SECRET,
        "consumer_key": CONSUMER_KEY,
        "consumer_secret": CONSUMER_SECRET,
    }


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Forces the XDG code path, points XDG_CONFIG_HOME into tmp_path, clears
    USSO_* environment variables, and changes the working directory to
    tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("usso.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    for var in ["USSO_SERVER", "USSO_TOKEN_FILE", "USSO_PASSWORD"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
