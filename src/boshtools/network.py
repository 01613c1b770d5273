from __future__ import annotations

import json
import platform
import re
import subprocess

from boshtools import common
from boshtools.common import ProvisioningError
from boshtools.tools import Status, ToolResult, run_idempotent

NO_SUCH_ROUTE = re.compile(r"not in table|no such process|no such route", re.IGNORECASE)

_IFCONFIG_HEADER = re.compile(r"^(?P<name>[^\s:]+):?\s")
_IFCONFIG_INET = re.compile(r"\binet (?:addr:)?(?P<address>\d+\.\d+\.\d+\.\d+)")


def _host_system(system: str | None) -> str:
    return (system or platform.system()).lower()


def parse_ip_addresses(payload: str, address: str, prefix: str) -> str | None:
    """Return the interface from ``ip -j address`` output that carries ``address``."""
    try:
        interfaces = json.loads(payload or "[]")
    except json.JSONDecodeError as exc:
        raise ProvisioningError("Failed to parse `ip -j address` output as JSON.") from exc

    for entry in interfaces:
        if not isinstance(entry, dict):
            continue
        name = str(entry.get("ifname") or "")
        if not name.startswith(prefix):
            continue
        for addr in entry.get("addr_info") or []:
            if isinstance(addr, dict) and addr.get("local") == address:
                return name
    return None


def parse_ifconfig(output: str, address: str, prefix: str) -> str | None:
    """Return the interface from ``ifconfig`` output that carries ``address``."""
    current: str | None = None
    for line in output.splitlines():
        if line and not line[0].isspace():
            match = _IFCONFIG_HEADER.match(line)
            current = match.group("name") if match else None
            if current is None:
                continue
            line = line[match.end():]
        if current is None or not current.startswith(prefix):
            continue
        for inet in _IFCONFIG_INET.finditer(line):
            if inet.group("address") == address:
                return current
    return None


def find_host_interface(
    address: str, *, prefix: str = "vboxnet", system: str | None = None
) -> str | None:
    """Find the host-only interface bound to ``address``, if any."""
    if _host_system(system) == "linux":
        result = common.run(["ip", "-j", "address", "show"], check=False)
        if result.returncode == 0:
            return parse_ip_addresses(result.stdout, address, prefix)
    result = common.run(["ifconfig"], check=False)
    if result.returncode != 0:
        raise ProvisioningError("Unable to inspect host network interfaces.")
    return parse_ifconfig(result.stdout or "", address, prefix)


class HostRoutes:
    """Mutates the host routing table through sudo."""

    def __init__(self, system: str | None = None) -> None:
        self.system = _host_system(system)

    def _command(self, action: str, cidr: str, via: str | None = None) -> list[str]:
        if self.system == "linux":
            verb = "del" if action == "delete" else "add"
            command = ["sudo", "ip", "route", verb, cidr]
            return command + ["via", via] if via else command
        command = ["sudo", "route", action, "-net", cidr]
        return command + [via] if via else command

    def delete(self, cidr: str) -> ToolResult:
        """Delete the route for ``cidr`` whatever its next hop."""
        return run_idempotent(self._command("delete", cidr), NO_SUCH_ROUTE)

    def add(self, cidr: str, via: str) -> ToolResult:
        command = self._command("add", cidr, via)
        try:
            result = common.run(command)
        except subprocess.CalledProcessError as exc:
            output = "\n".join(
                part.strip() for part in (exc.stdout or "", exc.stderr or "") if part
            )
            return ToolResult(Status.FAILED, tuple(command), output)
        return ToolResult(Status.SUCCESS, tuple(command), common.command_output(result))

    def replace(self, cidr: str, via: str) -> ToolResult:
        """Delete any route for ``cidr`` then add the one through ``via``."""
        self.delete(cidr).raise_for_status(f"Failed to delete route {cidr}")
        return self.add(cidr, via).raise_for_status(
            f"Failed to add route {cidr} via {via}"
        )
