"""
Thin capability wrappers around the external CLIs the pipeline drives.

Calls that are expected to fail when their target already exists return a
``ToolResult`` instead of raising, so callers decide which outcomes are
acceptable. Everything else raises ``ProvisioningError``.
"""
from __future__ import annotations

import dataclasses
import enum
import os
import re
import shutil
import subprocess
from collections.abc import Sequence
from pathlib import Path

from boshtools import common
from boshtools.common import ProvisioningError, command_output
from boshtools.config import NetworkConfig, PcfDevConfig, UaaConfig

VIRTUALBOX_URL = "https://www.virtualbox.org/wiki/Downloads"
PCFDEV_URL = "https://network.pivotal.io/products/pcfdev"

ALREADY_EXISTS = re.compile(r"already exists", re.IGNORECASE)


class Status(enum.Enum):
    SUCCESS = "success"
    ALREADY_SATISFIED = "already-satisfied"
    FAILED = "failed"


@dataclasses.dataclass(frozen=True)
class ToolResult:
    status: Status
    command: tuple[str, ...]
    output: str = ""

    def raise_for_status(self, message: str) -> "ToolResult":
        if self.status is Status.FAILED:
            detail = self.output or "no output"
            raise ProvisioningError(f"{message}: {detail}")
        return self


def run_idempotent(
    command: Sequence[object], satisfied: re.Pattern[str]
) -> ToolResult:
    """
    Run a command whose failure may mean the desired state already holds.

    Only failures whose output matches ``satisfied`` are reported as
    ALREADY_SATISFIED; any other non-zero exit is FAILED.
    """
    argv = tuple(str(part) for part in command)
    result = common.run(list(argv), check=False)
    output = command_output(result)
    if result.returncode == 0:
        return ToolResult(Status.SUCCESS, argv, output)
    if satisfied.search(output):
        return ToolResult(Status.ALREADY_SATISFIED, argv, output)
    return ToolResult(Status.FAILED, argv, output)


class ToolResolver:
    """
    Record where the pipeline's tools live.

    Lookups consult locations recorded during this run first, then the
    workspace search directories, then the inherited PATH.
    """

    def __init__(self, search_dirs: Sequence[Path] = ()) -> None:
        self.search_dirs = [Path(d) for d in search_dirs]
        self.resolved: dict[str, str] = {}

    def search_path(self) -> str:
        parts = [str(d) for d in self.search_dirs]
        inherited = os.environ.get("PATH")
        if inherited:
            parts.append(inherited)
        return os.pathsep.join(parts)

    def which(self, name: str) -> str | None:
        recorded = self.resolved.get(name)
        if recorded and Path(recorded).exists():
            return recorded
        return shutil.which(name, path=self.search_path())

    def record(self, name: str, location: Path | str) -> str:
        self.resolved[name] = str(location)
        return self.resolved[name]

    def require(self, name: str) -> str:
        location = self.which(name)
        if location is None:
            raise ProvisioningError(
                f"`{name}` is not available on the search path.",
                hint="Run `boshtools setup` to install the required tools.",
            )
        return self.record(name, location)


class Git:
    def __init__(self, resolver: ToolResolver) -> None:
        self.resolver = resolver

    def clone(self, url: str, destination: Path) -> None:
        git = self.resolver.require("git")
        try:
            common.run([git, "clone", url, str(destination)], stream=True)
        except subprocess.CalledProcessError as exc:
            raise ProvisioningError(
                f"Failed to clone {url} (exit code {exc.returncode})."
            ) from exc


class VBoxManage:
    """VirtualBox host-side management."""

    def __init__(self, resolver: ToolResolver) -> None:
        self.resolver = resolver

    def installed(self) -> bool:
        return self.resolver.which("VBoxManage") is not None

    def add_nat_network(self, network: NetworkConfig) -> ToolResult:
        return run_idempotent(
            [
                self.resolver.require("VBoxManage"),
                "natnetwork",
                "add",
                "--netname",
                network.name,
                "--network",
                network.cidr,
                "--dhcp",
                "on" if network.dhcp else "off",
            ],
            ALREADY_EXISTS,
        )

    def add_dhcp_server(self, network: NetworkConfig) -> ToolResult:
        return run_idempotent(
            [
                self.resolver.require("VBoxManage"),
                "dhcpserver",
                "add",
                "--netname",
                network.name,
                "--enable",
                "--ip",
                network.dhcp_ip,
                "--lowerip",
                network.lower_ip,
                "--netmask",
                network.netmask,
                "--upperip",
                network.upper_ip,
            ],
            ALREADY_EXISTS,
        )


class CfDev:
    """The PCF Dev plugin of the cf CLI."""

    def __init__(self, resolver: ToolResolver) -> None:
        self.resolver = resolver

    def available(self) -> bool:
        cf = self.resolver.which("cf")
        if cf is None:
            return False
        return common.run([cf, "dev"], check=False).returncode == 0

    def running(self) -> bool:
        cf = self.resolver.require("cf")
        result = common.run([cf, "dev", "status"], check=False)
        return "running" in (result.stdout or "").lower()

    def destroy(self) -> None:
        common.run([self.resolver.require("cf"), "dev", "destroy", "-f"], stream=True)

    def start(self, pcfdev: PcfDevConfig) -> None:
        common.run(
            [
                self.resolver.require("cf"),
                "dev",
                "start",
                "-d",
                pcfdev.domain,
                "-i",
                pcfdev.ip,
                "-s",
                pcfdev.services,
            ],
            stream=True,
        )


class Uaac:
    """The UAA command line client."""

    def __init__(self, resolver: ToolResolver) -> None:
        self.resolver = resolver

    def _uaac(self, *args: str, check: bool = True):
        return common.run([self.resolver.require("uaac"), *args], check=check)

    def target(self, uaa: UaaConfig) -> None:
        self._uaac("target", uaa.target, "--skip-ssl-validation")

    def login_client(self, uaa: UaaConfig) -> None:
        self._uaac(
            "token", "client", "get", uaa.admin_client, "--secret", uaa.admin_secret
        )

    def client_exists(self, name: str) -> bool:
        listing = self._uaac("clients").stdout or ""
        return any(line.strip().rstrip(":") == name for line in listing.splitlines())

    def add_client(self, uaa: UaaConfig) -> ToolResult:
        return run_idempotent(
            [
                self.resolver.require("uaac"),
                "client",
                "add",
                uaa.client,
                "--name",
                uaa.client,
                "--secret",
                uaa.client_secret,
                "--scope",
                uaa.scope,
                "--authorities",
                uaa.authorities,
                "--authorized_grant_types",
                uaa.grant_types,
            ],
            ALREADY_EXISTS,
        )
