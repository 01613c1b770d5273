from __future__ import annotations

import os
import shlex
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Union

import click

Command = Union[str, Sequence[object]]

TRACE_ENV_VARS = ("BOSHTOOLS_TRACE", "TRACE")


class ProvisioningError(click.ClickException):
    """A fatal condition that aborts the whole provisioning run."""

    def __init__(self, message: str, hint: str | None = None) -> None:
        if hint:
            message = f"{message}\n{hint}"
        super().__init__(message)

    def show(self, file=None) -> None:
        click.secho(
            f"Error: {self.format_message()}",
            file=file,
            fg="red",
            bold=True,
            err=file is None,
        )


def trace_enabled() -> bool:
    """Return True when command tracing was requested through the environment."""
    return any(os.getenv(name, "").lower() == "true" for name in TRACE_ENV_VARS)


def info(message: str) -> None:
    click.secho(message, fg="bright_black", bold=True)


def success(message: str) -> None:
    click.secho(message, fg="green", bold=True)


def _format_command(command: Command) -> str:
    """Return a human-friendly representation of a command for logs."""
    if isinstance(command, str):
        return command
    return " ".join(shlex.quote(str(part)) for part in command)


def run(
    command: Command,
    *,
    check: bool = True,
    quiet: bool | None = None,
    stream: bool = False,
    cwd: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> subprocess.CompletedProcess[str]:
    """
    Execute a command and return the completed process.

    Output is captured for downstream parsing unless stream is set, in which
    case long-running tools write straight to the terminal. Commands are
    echoed when tracing is enabled, or whenever quiet is explicitly False.
    """
    if quiet is None:
        quiet = not trace_enabled()
    if not quiet:
        click.echo(f"+ {_format_command(command)}")

    if isinstance(command, str):
        command = shlex.split(command)
    else:
        command = [str(part) for part in command]

    process_env = None
    if env is not None:
        process_env = {**os.environ, **env}

    pipe = None if stream else subprocess.PIPE
    return subprocess.run(
        command,
        check=check,
        text=True,
        stdout=pipe,
        stderr=pipe,
        cwd=str(cwd) if cwd is not None else None,
        env=process_env,
    )


def command_output(result: subprocess.CompletedProcess[str]) -> str:
    """Return the combined, stripped stdout and stderr of a finished command."""
    parts = [(result.stdout or "").strip(), (result.stderr or "").strip()]
    return "\n".join(part for part in parts if part)
