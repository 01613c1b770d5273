from __future__ import annotations

from pathlib import Path

import yaml

from boshtools import state


def test_default_state_home_honours_env(state_home: Path) -> None:
    assert state.default_state_home() == state_home
    assert not state_home.exists()

    path = state.get_state_file("director.yaml")

    assert path == state_home / "director.yaml"
    assert state_home.is_dir()


def test_vars_store_marker_needs_successful_deploy(tmp_path: Path) -> None:
    vars_store = tmp_path / "bosh-director-vars"
    marker = state.VarsStoreMarker(vars_store)

    assert marker.is_provisioned() is False

    vars_store.write_text("admin_password: x\n")
    assert marker.is_provisioned() is False

    marker.mark_provisioned()
    assert marker.record == tmp_path / state.DEPLOYED_RECORD
    assert marker.is_provisioned() is True

    vars_store.unlink()
    assert marker.is_provisioned() is False


def test_state_record_round_trip(state_home: Path) -> None:
    record = state.StateRecord(director="vbox")

    assert record.is_provisioned() is False
    record.mark_provisioned()

    assert record.path == state_home / state.PROVISIONED_RECORD
    assert yaml.safe_load(record.path.read_text())["director"] == "vbox"
    assert record.is_provisioned() is True
    assert state.StateRecord(director="other").is_provisioned() is False
