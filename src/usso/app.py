"""Typer application and CLI entry point for usso.

Commands::

    usso login foo@bar.com --token-name laptop --save ~/.usso-token
    usso sign https://api.example.com/me --token-file ~/.usso-token
    usso request https://api.example.com/me --token-file ~/.usso-token
    usso config show
    usso config set server staging

``login`` prompts for the password (or reads ``USSO_PASSWORD``) and, when
the account has two-factor authentication, for the one-time password.
Tokens are printed to stdout unless ``--save`` names a file.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.
"""

from __future__ import annotations

import contextlib
import os
import signal
import sys
from pathlib import Path
from typing import Any, Iterator, Optional

import httpx
import typer

from usso import __version__
from usso.exceptions import (
    InvalidUsageError,
    ProtocolError,
    ResponseError,
    SigningError,
    TransportError,
    UssoError,
)
from usso.exit_codes import EXIT_GENERIC_FAILURE
from usso.output import (
    debug,
    error,
    format_response,
    info,
    print_data,
    success,
    suggest,
)

app = typer.Typer(
    name="usso",
    help="Obtain Ubuntu SSO tokens and sign HTTP requests with them.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)
config_app = typer.Typer(no_args_is_help=True)
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"usso {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Initialise the global output manager from the CLI flags."""
    from usso.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(
        OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    )


@contextlib.contextmanager
def _exit_on_error() -> Iterator[None]:
    """Report a :class:`UssoError` on stderr and exit with its code."""
    try:
        yield
    except UssoError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _token_path(token_file: Optional[str]) -> Path:
    from usso.config import resolve_config

    resolved = resolve_config(cli_token_file=token_file).token_file
    if not resolved:
        raise InvalidUsageError(
            "No token file given: pass --token-file, set USSO_TOKEN_FILE, "
            "or run 'usso config set token_file PATH'"
        )
    return Path(resolved).expanduser()


# ------------------------------------------------------------------ #
# login
# ------------------------------------------------------------------ #


@app.command("login")
def login_command(
    email: str = typer.Argument(help="Account email address."),
    token_name: str = typer.Option(
        ..., "--token-name", "-t", help="Label for the issued token."
    ),
    server: Optional[str] = typer.Option(
        None, "--server", "-s", help="production, staging, or a base URL."
    ),
    save: Optional[str] = typer.Option(
        None, "--save", help="Write the token to this file instead of stdout."
    ),
    otp: bool = typer.Option(
        False, "--otp", help="Ask for a one-time password up front."
    ),
) -> None:
    """Exchange an email and password for an OAuth token."""
    from usso.client import get_token
    from usso.config import resolve_config, save_token
    from usso.server import resolve_server

    with _exit_on_error():
        config = resolve_config(cli_server=server)
        sso_server = resolve_server(config.server)
        debug(f"Using SSO server {sso_server.base_url}")

        password = os.environ.get("USSO_PASSWORD") or typer.prompt(
            f"Password for {email}", hide_input=True
        )
        one_time: Optional[str] = None
        if otp:
            one_time = typer.prompt("One-time password")

        kwargs: dict[str, Any] = {
            "timeout": config.timeout,
            "verify_ssl": config.verify_ssl,
        }
        try:
            token = get_token(
                sso_server, email, password, token_name, otp=one_time, **kwargs
            )
        except ProtocolError as exc:
            if not exc.twofactor_required or one_time is not None:
                raise
            one_time = typer.prompt("One-time password")
            token = get_token(
                sso_server, email, password, token_name, otp=one_time, **kwargs
            )

        if save:
            path = Path(save).expanduser()
            save_token(token, path)
            success(f'Token "{token.token_name}" saved to {path}')
            suggest(f"Sign requests with: usso sign URL --token-file {path}")
        else:
            format_response(token.model_dump(mode="json"))


# ------------------------------------------------------------------ #
# sign / request
# ------------------------------------------------------------------ #


@app.command("sign")
def sign_command(
    url: str = typer.Argument(help="URL of the request to sign."),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method."),
    token_file: Optional[str] = typer.Option(
        None, "--token-file", help="Token file written by 'usso login --save'."
    ),
    hmac: bool = typer.Option(
        False, "--hmac", help="Use HMAC-SHA1 instead of PLAINTEXT."
    ),
) -> None:
    """Print the Authorization header for a request."""
    from usso.config import load_token
    from usso.oauth import SIGNATURE_HMAC_SHA1, SIGNATURE_PLAINTEXT, sign_request

    with _exit_on_error():
        token = load_token(_token_path(token_file))
        try:
            request = httpx.Request(method.upper(), url)
        except httpx.InvalidURL as exc:
            raise SigningError(f"Cannot sign request with URL '{url}': {exc}") from exc
        sign_request(
            token,
            request,
            signature_method=SIGNATURE_HMAC_SHA1 if hmac else SIGNATURE_PLAINTEXT,
        )
        print_data(request.headers["Authorization"])


@app.command("request")
def request_command(
    url: str = typer.Argument(help="URL to send the signed request to."),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method."),
    data: Optional[str] = typer.Option(None, "--data", "-d", help="Request body."),
    header: list[str] = typer.Option(
        [], "--header", "-H", help="Extra header as 'Name: value' (repeatable)."
    ),
    token_file: Optional[str] = typer.Option(
        None, "--token-file", help="Token file written by 'usso login --save'."
    ),
    hmac: bool = typer.Option(
        False, "--hmac", help="Use HMAC-SHA1 instead of PLAINTEXT."
    ),
) -> None:
    """Send a signed request and print the response body."""
    from usso.config import load_token, resolve_config
    from usso.oauth import SIGNATURE_HMAC_SHA1, SIGNATURE_PLAINTEXT, SSOAuth

    with _exit_on_error():
        config = resolve_config()
        token = load_token(_token_path(token_file))

        headers: dict[str, str] = {}
        for raw in header:
            name, sep, value = raw.partition(":")
            if not sep or not name.strip():
                raise InvalidUsageError(f"Invalid header '{raw}', expected 'Name: value'")
            headers[name.strip()] = value.strip()

        auth = SSOAuth(
            token,
            signature_method=SIGNATURE_HMAC_SHA1 if hmac else SIGNATURE_PLAINTEXT,
        )
        with httpx.Client(
            auth=auth, timeout=config.timeout, verify=config.verify_ssl
        ) as client:
            try:
                response = client.request(
                    method.upper(),
                    url,
                    headers=headers,
                    content=data.encode("utf-8") if data is not None else None,
                )
            except httpx.InvalidURL as exc:
                raise SigningError(f"Cannot sign request with URL '{url}': {exc}") from exc
            except httpx.TransportError as exc:
                raise TransportError(f"Request to {url} failed: {exc}") from exc

        debug(f"{method.upper()} {url} -> HTTP {response.status_code}")
        if not response.is_success:
            raise ResponseError(response.status_code, body=response.text)
        if response.text:
            format_response(response.text)


# ------------------------------------------------------------------ #
# config
# ------------------------------------------------------------------ #


@config_app.command("show")
def config_show() -> None:
    """Show the effective configuration."""
    from usso.config import config_path, resolve_config

    with _exit_on_error():
        info(f"Config file: {config_path()}")
        format_response(resolve_config().model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config key (server, timeout, verify_ssl, token_file)."),
    value: str = typer.Argument(help="New value; an empty string clears optional keys."),
) -> None:
    """Set a configuration value."""
    from usso.config import set_config_value

    with _exit_on_error():
        set_config_value(key, value)
        success(f"{key} updated.")


# ------------------------------------------------------------------ #
# Entry point
# ------------------------------------------------------------------ #


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``usso`` console script.

    :class:`~usso.exceptions.UssoError` instances raised outside a command
    cause a clean exit with the error's ``exit_code``.
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except UssoError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
