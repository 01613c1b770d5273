from __future__ import annotations

import dataclasses
import re
from pathlib import Path
from typing import Any

import click

from boshtools.common import ProvisioningError
from boshtools.config import DirectorConfig, load_nested_yaml

CA_FIELD = "default_ca.ca"
SSH_KEY_FIELD = "jumpbox_ssh.private_key"
ADMIN_PASSWORD_FIELD = "admin_password"

_ASSIGNMENT = re.compile(
    r'^(?:export\s+)?(?P<key>[A-Za-z_][A-Za-z0-9_]*)="(?P<value>(?:[^"\\]|\\.)*)"$'
)
_SHELL_SPECIAL = re.compile(r'([\\"$`])')
_ESCAPED = re.compile(r"\\(.)")


@dataclasses.dataclass(frozen=True)
class VariableStore:
    ca_certificate: str
    ssh_private_key: str
    admin_password: str


def _lookup(data: dict[str, Any], dotted: str, source: Path) -> str:
    node: Any = data
    for key in dotted.split("."):
        if not isinstance(node, dict) or key not in node:
            raise ProvisioningError(f"{source} is missing '{dotted}'.")
        node = node[key]
    if node is None or isinstance(node, (dict, list)):
        raise ProvisioningError(f"{source} has no scalar value at '{dotted}'.")
    return str(node)


def read_variable_store(path: Path) -> VariableStore:
    """Parse the director variable store written by ``create-env``."""
    if not path.is_file():
        raise ProvisioningError(
            f"Director variable store not found at {path}.",
            hint="Deploy the director first with `boshtools setup`.",
        )
    try:
        data = load_nested_yaml(path)
    except click.ClickException as exc:
        raise ProvisioningError(exc.format_message()) from exc
    return VariableStore(
        ca_certificate=_lookup(data, CA_FIELD, path),
        ssh_private_key=_lookup(data, SSH_KEY_FIELD, path),
        admin_password=_lookup(data, ADMIN_PASSWORD_FIELD, path),
    )


def profile_values(director: DirectorConfig, store: VariableStore) -> dict[str, str]:
    return {
        "BOSH_ENV_NAME": director.env_name,
        "BOSH_CLIENT": director.client,
        "BOSH_CLIENT_SECRET": store.admin_password,
        "BOSH_ENVIRONMENT": director.url,
        "BOSH_CA_CERT": director.ca_cert_path,
    }


def render_profile(values: dict[str, str]) -> str:
    lines = []
    for key, value in values.items():
        quoted = _SHELL_SPECIAL.sub(r"\\\1", value)
        lines.append(f'export {key}="{quoted}"\n')
    return "".join(lines)


def read_profile(path: Path) -> dict[str, str]:
    """Return the variables assigned in an environment profile."""
    if not path.is_file():
        raise ProvisioningError(f"Environment profile not found at {path}.")
    values: dict[str, str] = {}
    for line in path.read_text().splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        match = _ASSIGNMENT.match(stripped)
        if match is None:
            raise ProvisioningError(f"Invalid line in {path}: '{line}'")
        values[match.group("key")] = _ESCAPED.sub(r"\1", match.group("value"))
    return values


def write_credentials(
    store: VariableStore, director: DirectorConfig, profile_path: Path
) -> dict[str, str]:
    """
    Materialize the director credentials on the host.

    The CA certificate and SSH key are written to their fixed paths and the
    profile is regenerated from scratch.
    """
    ca_path = Path(director.ca_cert_path)
    ca_path.write_text(store.ca_certificate.rstrip("\n") + "\n")

    key_path = Path(director.ssh_key_path)
    key_path.touch(mode=0o600, exist_ok=True)
    key_path.chmod(0o600)
    key_path.write_text(store.ssh_private_key.rstrip("\n") + "\n")

    values = profile_values(director, store)
    profile_path.write_text(render_profile(values))
    return values
