from __future__ import annotations

import dataclasses
import stat
from pathlib import Path

import pytest
from click import ClickException

from boshtools import credentials
from boshtools.config import Settings

from conftest import VARS_STORE, write_vars_store


def test_read_variable_store(tmp_path: Path) -> None:
    path = tmp_path / "bosh-director-vars"
    write_vars_store(path, admin_password="hunter2")

    store = credentials.read_variable_store(path)

    assert store.admin_password == "hunter2"
    assert store.ca_certificate == VARS_STORE["default_ca"]["ca"]
    assert store.ssh_private_key == VARS_STORE["jumpbox_ssh"]["private_key"]


def test_read_variable_store_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ClickException) as exc_info:
        credentials.read_variable_store(tmp_path / "bosh-director-vars")

    assert "boshtools setup" in exc_info.value.format_message()


def test_read_variable_store_missing_field(tmp_path: Path) -> None:
    path = tmp_path / "bosh-director-vars"
    path.write_text("admin_password: x\ndefault_ca:\n  certificate: y\n")

    with pytest.raises(ClickException) as exc_info:
        credentials.read_variable_store(path)

    assert "default_ca.ca" in exc_info.value.format_message()


def test_write_credentials(tmp_path: Path, settings: Settings) -> None:
    store = credentials.VariableStore(
        ca_certificate="CA-PEM\n",
        ssh_private_key="KEY-PEM",
        admin_password="s3cret",
    )
    profile = tmp_path / "bosh_variables"

    credentials.write_credentials(store, settings.director, profile)

    assert profile.read_text() == (
        'export BOSH_ENV_NAME="lite"\n'
        'export BOSH_CLIENT="admin"\n'
        'export BOSH_CLIENT_SECRET="s3cret"\n'
        'export BOSH_ENVIRONMENT="https://192.168.11.2:25555"\n'
        f'export BOSH_CA_CERT="{settings.director.ca_cert_path}"\n'
    )
    assert Path(settings.director.ca_cert_path).read_text() == "CA-PEM\n"
    key = Path(settings.director.ssh_key_path)
    assert key.read_text() == "KEY-PEM\n"
    assert stat.S_IMODE(key.stat().st_mode) == 0o600


def test_profile_is_regenerated_not_merged(tmp_path: Path, settings: Settings) -> None:
    profile = tmp_path / "bosh_variables"
    profile.write_text('export BOSH_CLIENT_SECRET="old"\nexport EXTRA="left-over"\n')
    store = credentials.VariableStore("ca", "key", "new")

    credentials.write_credentials(store, settings.director, profile)

    values = credentials.read_profile(profile)
    assert values["BOSH_CLIENT_SECRET"] == "new"
    assert "EXTRA" not in values


def test_profile_quotes_shell_characters(tmp_path: Path, settings: Settings) -> None:
    director = dataclasses.replace(settings.director, env_name='we"ird $env')
    store = credentials.VariableStore("ca", "key", "pa\\ss`word")
    profile = tmp_path / "bosh_variables"

    credentials.write_credentials(store, director, profile)

    assert 'BOSH_ENV_NAME="we\\"ird \\$env"' in profile.read_text()
    values = credentials.read_profile(profile)
    assert values["BOSH_ENV_NAME"] == 'we"ird $env'
    assert values["BOSH_CLIENT_SECRET"] == "pa\\ss`word"


def test_read_profile_rejects_other_content(tmp_path: Path) -> None:
    profile = tmp_path / "bosh_variables"
    profile.write_text("# generated\n\nrm -rf /\n")

    with pytest.raises(ClickException):
        credentials.read_profile(profile)
