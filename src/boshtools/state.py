from __future__ import annotations

import datetime as dt
import os
from pathlib import Path
from typing import Protocol

import yaml

STATE_ENV_VAR = "BOSHTOOLS_STATE_HOME"
PROVISIONED_RECORD = "director.yaml"
DEPLOYED_RECORD = "bosh-director-deployed"


def default_state_home() -> Path:
    """Return the configured state directory without creating it."""
    configured = os.getenv(STATE_ENV_VAR)
    if configured:
        return Path(configured).expanduser()
    return Path("~/boshtools/state").expanduser()


def ensure_state_dir() -> Path:
    """Ensure the state directory exists and return it."""
    state_dir = default_state_home()
    state_dir.mkdir(parents=True, exist_ok=True)
    return state_dir


def get_state_file(name: str, *, ensure_parent: bool = True) -> Path:
    """
    Return the path to a file under the state directory.

    When ensure_parent is True (default) the parent directories are created.
    """
    base = ensure_state_dir() if ensure_parent else default_state_home()
    path = base / name
    if ensure_parent:
        path.parent.mkdir(parents=True, exist_ok=True)
    return path


class StateStore(Protocol):
    """Answers whether the director has already been deployed."""

    def is_provisioned(self) -> bool: ...

    def mark_provisioned(self) -> None: ...


class VarsStoreMarker:
    """
    Treat the director variable store as the deployment marker.

    create-env writes the store before the VM exists, so a sibling record
    written after a successful deploy must be present as well.
    """

    def __init__(self, vars_store: Path) -> None:
        self.vars_store = vars_store
        self.record = vars_store.with_name(DEPLOYED_RECORD)

    def is_provisioned(self) -> bool:
        return self.vars_store.is_file() and self.record.is_file()

    def mark_provisioned(self) -> None:
        record = {
            "vars_store": self.vars_store.name,
            "provisioned_at": dt.datetime.now(dt.timezone.utc).isoformat(),
        }
        self.record.write_text(yaml.safe_dump(record, sort_keys=False))


class StateRecord:
    """Keep the deployment marker as a YAML record in the state directory."""

    def __init__(self, path: Path | None = None, *, director: str = "vbox") -> None:
        self.path = path or get_state_file(PROVISIONED_RECORD, ensure_parent=False)
        self.director = director

    def _load(self) -> dict[str, object]:
        if not self.path.is_file():
            return {}
        data = yaml.safe_load(self.path.read_text()) or {}
        return data if isinstance(data, dict) else {}

    def is_provisioned(self) -> bool:
        return self._load().get("director") == self.director

    def mark_provisioned(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        record = {
            "director": self.director,
            "provisioned_at": dt.datetime.now(dt.timezone.utc).isoformat(),
        }
        self.path.write_text(yaml.safe_dump(record, sort_keys=False))
