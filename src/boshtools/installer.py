from __future__ import annotations

import dataclasses
import platform
import subprocess
import tempfile
from pathlib import Path
from typing import Iterable

from boshtools import common
from boshtools.common import ProvisioningError, success
from boshtools.tools import ToolResolver

RQ_VERSION = "v0.10.4"
JQ_VERSION = "jq-1.5"
BOSH_CLI_VERSION = "2.0.13"


@dataclasses.dataclass(frozen=True)
class ToolDependency:
    """
    A command line tool the pipeline needs on its search path.

    ``sources`` maps a host platform (``platform.system().lower()``) to the
    download URL. Archives are extracted into the install directory, plain
    binaries are written to ``install_dir / command``.
    """

    name: str
    command: str
    sources: dict[str, str]
    archive: bool = False
    mode: int = 0o755

    def source_for(self, system: str) -> str:
        try:
            return self.sources[system]
        except KeyError as exc:
            supported = ", ".join(sorted(self.sources)) or "<none>"
            raise ProvisioningError(
                f"No {self.name} download available for {system} hosts "
                f"(supported: {supported})."
            ) from exc


DEFAULT_DEPENDENCIES: tuple[ToolDependency, ...] = (
    ToolDependency(
        name="rq",
        command="rq",
        archive=True,
        sources={
            "darwin": (
                f"https://github.com/dflemstr/rq/releases/download/{RQ_VERSION}/"
                f"record-query-{RQ_VERSION}-x86_64-apple-darwin.tar.gz"
            ),
            "linux": (
                f"https://github.com/dflemstr/rq/releases/download/{RQ_VERSION}/"
                f"record-query-{RQ_VERSION}-x86_64-unknown-linux-gnu.tar.gz"
            ),
        },
    ),
    ToolDependency(
        name="jq",
        command="jq",
        sources={
            "darwin": f"https://github.com/stedolan/jq/releases/download/{JQ_VERSION}/jq-osx-amd64",
            "linux": f"https://github.com/stedolan/jq/releases/download/{JQ_VERSION}/jq-linux64",
        },
    ),
    ToolDependency(
        name="the new bosh cli (go cli) as `gbosh`",
        command="gbosh",
        sources={
            "darwin": f"https://s3.amazonaws.com/bosh-cli-artifacts/bosh-cli-{BOSH_CLI_VERSION}-darwin-amd64",
            "linux": f"https://s3.amazonaws.com/bosh-cli-artifacts/bosh-cli-{BOSH_CLI_VERSION}-linux-amd64",
        },
    ),
)


def _download(url: str, destination: Path) -> None:
    try:
        common.run(["curl", "-fsSL", "-o", str(destination), url], stream=True)
    except subprocess.CalledProcessError as exc:
        raise ProvisioningError(
            f"Failed to download {url} (exit code {exc.returncode})."
        ) from exc


def _extract(archive: Path, install_dir: Path) -> None:
    try:
        common.run(
            [
                "tar",
                "-zxf",
                str(archive),
                "--strip-components=1",
                "-C",
                str(install_dir),
            ]
        )
    except subprocess.CalledProcessError as exc:
        raise ProvisioningError(
            f"Failed to extract {archive} into {install_dir}."
        ) from exc


def ensure_tool(
    dependency: ToolDependency,
    resolver: ToolResolver,
    install_dir: Path,
    *,
    system: str | None = None,
) -> bool:
    """
    Make sure ``dependency`` resolves, installing it when missing.

    Returns True when something was installed.
    """
    existing = resolver.which(dependency.command)
    if existing is not None:
        resolver.record(dependency.command, existing)
        success(f"{dependency.command} exists. Moving on...")
        return False

    host = system or platform.system().lower()
    url = dependency.source_for(host)
    install_dir.mkdir(parents=True, exist_ok=True)
    target = install_dir / dependency.command

    success(f"Downloading {dependency.name} ...")
    if dependency.archive:
        with tempfile.TemporaryDirectory() as scratch:
            archive = Path(scratch) / f"{dependency.command}.tar.gz"
            _download(url, archive)
            _extract(archive, install_dir)
    else:
        _download(url, target)

    if not target.exists():
        raise ProvisioningError(
            f"Installing {dependency.command} did not produce {target}."
        )
    target.chmod(dependency.mode)
    resolver.record(dependency.command, target)
    success("Done.\n")
    return True


def install_dependencies(
    resolver: ToolResolver,
    install_dir: Path,
    dependencies: Iterable[ToolDependency] = DEFAULT_DEPENDENCIES,
    *,
    system: str | None = None,
) -> list[str]:
    """Ensure every dependency resolves; return the commands that were installed."""
    installed: list[str] = []
    for dependency in dependencies:
        if ensure_tool(dependency, resolver, install_dir, system=system):
            installed.append(dependency.command)
    return installed
