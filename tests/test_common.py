from __future__ import annotations

import io
import shlex
import sys
from pathlib import Path

import pytest

from boshtools import common


def test_run_executes_sequence_command() -> None:
    code = "print('hello from run', end='')"
    result = common.run([sys.executable, "-c", code])
    assert result.stdout == "hello from run"


def test_run_executes_string_command() -> None:
    code = "print('hello again', end='')"
    command = f"{shlex.quote(sys.executable)} -c {shlex.quote(code)}"
    result = common.run(command)
    assert result.stdout == "hello again"


def test_run_passes_cwd_and_env(tmp_path: Path) -> None:
    code = "import os; print(os.getcwd(), os.environ['BOSH_CLIENT'], end='')"
    result = common.run(
        [sys.executable, "-c", code], cwd=tmp_path, env={"BOSH_CLIENT": "admin"}
    )
    assert result.stdout == f"{tmp_path.resolve()} admin"


def test_run_echoes_commands_when_tracing(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("TRACE", "true")
    common.run([sys.executable, "-c", "pass"])
    assert capsys.readouterr().out.startswith("+ ")

    monkeypatch.setenv("TRACE", "false")
    monkeypatch.delenv("BOSHTOOLS_TRACE", raising=False)
    common.run([sys.executable, "-c", "pass"])
    assert capsys.readouterr().out == ""


def test_provisioning_error_includes_hint(capsys: pytest.CaptureFixture[str]) -> None:
    error = common.ProvisioningError("Please install virtualbox.", hint="See the docs")

    error.show()

    assert error.exit_code == 1
    assert "Error: Please install virtualbox.\nSee the docs" in capsys.readouterr().err


def test_provisioning_error_shows_on_given_file(
    capsys: pytest.CaptureFixture[str],
) -> None:
    error = common.ProvisioningError("PCFDev does not exist.")
    buffer = io.StringIO()

    error.show(file=buffer)

    assert buffer.getvalue() == "Error: PCFDev does not exist.\n"
    assert capsys.readouterr().err == ""
