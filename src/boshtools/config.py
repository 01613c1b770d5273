from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Any

import click
import yaml

from boshtools.state import get_state_file

CONFIG_FILENAME = "boshtools.yaml"

DEFAULT_WORK_ROOT = Path("~/boshtools").expanduser()
STATE_BACKENDS = ("vars-store", "record")
DEFAULT_STATE_BACKEND = "vars-store"

_NETWORK_DEFAULTS: dict[str, Any] = {
    "name": "BoshLiteNatNetwork",
    "cidr": "10.0.3.0/24",
    "dhcp": True,
    "dhcp_ip": "10.0.3.3",
    "lower_ip": "10.0.3.4",
    "upper_ip": "10.0.3.254",
    "netmask": "255.255.255.0",
}

_DIRECTOR_DEFAULTS: dict[str, Any] = {
    "name": "vbox",
    "env_name": "lite",
    "client": "admin",
    "internal_ip": "192.168.11.2",
    "internal_gw": "192.168.11.1",
    "internal_cidr": "192.168.11.0/24",
    "route_cidr": "10.244.0.0/16",
    "port": 25555,
    "store_dir": "~/.bosh_virtualbox_cpi",
    "repo_url": "https://github.com/cloudfoundry/bosh-deployment.git",
    "ca_cert_path": "/tmp/director-ca",
    "ssh_key_path": "/tmp/ssh-key",
}

_PCFDEV_DEFAULTS: dict[str, Any] = {
    "domain": "local.pcfdev.io",
    "ip": "192.168.11.11",
    "services": "none",
}

_UAA_DEFAULTS: dict[str, Any] = {
    "target": "uaa.local.pcfdev.io",
    "admin_client": "admin",
    "admin_secret": "admin-client-secret",
    "client": "cloudcache_broker",
    "client_secret": "cloudcache_broker-secret",
    "scope": "uaa.none",
    "authorities": "cloud_controller.admin",
    "grant_types": "client_credentials,refresh_token",
}

_SECTION_DEFAULTS: dict[str, dict[str, Any]] = {
    "network": _NETWORK_DEFAULTS,
    "director": _DIRECTOR_DEFAULTS,
    "pcfdev": _PCFDEV_DEFAULTS,
    "uaa": _UAA_DEFAULTS,
}


@dataclasses.dataclass(frozen=True)
class NetworkConfig:
    name: str
    cidr: str
    dhcp: bool
    dhcp_ip: str
    lower_ip: str
    upper_ip: str
    netmask: str


@dataclasses.dataclass(frozen=True)
class DirectorConfig:
    name: str
    env_name: str
    client: str
    internal_ip: str
    internal_gw: str
    internal_cidr: str
    route_cidr: str
    port: int
    store_dir: str
    repo_url: str
    ca_cert_path: str
    ssh_key_path: str

    @property
    def url(self) -> str:
        return f"https://{self.internal_ip}:{self.port}"


@dataclasses.dataclass(frozen=True)
class PcfDevConfig:
    domain: str
    ip: str
    services: str


@dataclasses.dataclass(frozen=True)
class UaaConfig:
    target: str
    admin_client: str
    admin_secret: str
    client: str
    client_secret: str
    scope: str
    authorities: str
    grant_types: str


@dataclasses.dataclass(frozen=True)
class Settings:
    work_root: Path
    state_backend: str
    cloud_config: Path | None
    network: NetworkConfig
    director: DirectorConfig
    pcfdev: PcfDevConfig
    uaa: UaaConfig


def load_nested_yaml(path: Path) -> dict[str, Any]:
    """Load YAML content from disk and ensure the result is a mapping."""
    target = path.expanduser()
    try:
        raw = target.read_text()
    except FileNotFoundError as exc:
        raise click.ClickException(f"Expected file at {target}") from exc

    try:
        data = yaml.safe_load(raw) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Failed to parse YAML in {target}: {exc}") from exc

    if not isinstance(data, dict):
        raise click.ClickException(
            f"{target} has unexpected YAML structure (expected a mapping)."
        )

    return data


def _write_default_config(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    document = {
        "boshtools": {
            "work_root": str(DEFAULT_WORK_ROOT),
            "state_backend": DEFAULT_STATE_BACKEND,
            **{name: dict(values) for name, values in _SECTION_DEFAULTS.items()},
        }
    }
    path.write_text(yaml.safe_dump(document, sort_keys=False))


def _config_path() -> Path:
    return get_state_file(CONFIG_FILENAME)


def load_boshtools_config(
    path: Path | None = None, *, ensure: bool = False
) -> dict[str, Any]:
    target = (path or _config_path()).expanduser()
    if ensure and not target.exists():
        _write_default_config(target)
    if not target.exists():
        return {
            "work_root": str(DEFAULT_WORK_ROOT),
            "state_backend": DEFAULT_STATE_BACKEND,
        }
    data = load_nested_yaml(target)
    section = data.get("boshtools")
    if section is None:
        section = data
    if not isinstance(section, dict):
        raise click.ClickException(
            f"{target} has unexpected structure for the 'boshtools' section."
        )

    backend = section.get("state_backend")
    if backend is None:
        section["state_backend"] = DEFAULT_STATE_BACKEND
    elif backend not in STATE_BACKENDS:
        raise click.ClickException(
            f"{target} has unknown state_backend {backend!r}; "
            f"expected one of: {', '.join(STATE_BACKENDS)}."
        )

    return section


def _merge_section(config: dict[str, Any], name: str) -> dict[str, Any]:
    merged = dict(_SECTION_DEFAULTS[name])
    overrides = config.get(name)
    if overrides is None:
        return merged
    if not isinstance(overrides, dict):
        raise click.ClickException(
            f"The '{name}' configuration section must be a mapping."
        )
    for key, value in overrides.items():
        if key not in merged:
            raise click.ClickException(f"Unknown configuration key '{name}.{key}'.")
        if value is None:
            continue
        default = merged[key]
        if isinstance(default, bool):
            if not isinstance(value, bool):
                raise click.ClickException(
                    f"Configuration value '{name}.{key}' must be a boolean."
                )
        elif isinstance(default, int):
            if isinstance(value, bool) or not isinstance(value, int):
                raise click.ClickException(
                    f"Configuration value '{name}.{key}' must be an integer."
                )
        elif not isinstance(value, str):
            raise click.ClickException(
                f"Configuration value '{name}.{key}' must be a string."
            )
        merged[key] = value
    return merged


def load_settings(path: Path | None = None) -> Settings:
    """Return typed settings from the configuration, filling in defaults."""
    config = load_boshtools_config(path, ensure=True)

    work_root = config.get("work_root") or str(DEFAULT_WORK_ROOT)
    if not isinstance(work_root, str):
        raise click.ClickException("Configuration value 'work_root' must be a string path.")

    cloud_config = config.get("cloud_config")
    if cloud_config is not None and not isinstance(cloud_config, str):
        raise click.ClickException(
            "Configuration value 'cloud_config' must be a string path."
        )

    return Settings(
        work_root=Path(work_root).expanduser(),
        state_backend=config.get("state_backend", DEFAULT_STATE_BACKEND),
        cloud_config=Path(cloud_config).expanduser() if cloud_config else None,
        network=NetworkConfig(**_merge_section(config, "network")),
        director=DirectorConfig(**_merge_section(config, "director")),
        pcfdev=PcfDevConfig(**_merge_section(config, "pcfdev")),
        uaa=UaaConfig(**_merge_section(config, "uaa")),
    )
