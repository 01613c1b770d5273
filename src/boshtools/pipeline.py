from __future__ import annotations

import dataclasses
import enum
from pathlib import Path
from typing import Sequence

import click

from boshtools.config import (
    DirectorConfig,
    NetworkConfig,
    PcfDevConfig,
    Settings,
    UaaConfig,
)
from boshtools.director import (
    DEFAULT_CLOUD_CONFIG,
    PROFILE_NAME,
    VARS_STORE_NAME,
    Bosh,
)
from boshtools.network import HostRoutes
from boshtools.state import StateRecord, StateStore, VarsStoreMarker
from boshtools.tools import CfDev, Git, ToolResolver, Uaac, VBoxManage

DEPLOYMENT_REPO = "bosh-deployment"


@dataclasses.dataclass(frozen=True)
class WorkspacePaths:
    root: Path

    @property
    def bin_dir(self) -> Path:
        return self.root / "bin"

    @property
    def lib_dir(self) -> Path:
        return self.root / "lib"

    @property
    def deployment_dir(self) -> Path:
        return self.lib_dir / DEPLOYMENT_REPO

    @property
    def vars_store(self) -> Path:
        return self.deployment_dir / VARS_STORE_NAME

    @property
    def profile(self) -> Path:
        return self.deployment_dir / PROFILE_NAME

    def create(self) -> None:
        for directory in (self.bin_dir, self.lib_dir):
            directory.mkdir(parents=True, exist_ok=True)


@dataclasses.dataclass
class Tools:
    """The external CLIs, each behind its own capability object."""

    vboxmanage: VBoxManage
    cfdev: CfDev
    git: Git
    bosh: Bosh
    uaac: Uaac
    routes: HostRoutes

    @classmethod
    def create(cls, resolver: ToolResolver) -> "Tools":
        return cls(
            vboxmanage=VBoxManage(resolver),
            cfdev=CfDev(resolver),
            git=Git(resolver),
            bosh=Bosh(resolver),
            uaac=Uaac(resolver),
            routes=HostRoutes(),
        )


@dataclasses.dataclass
class ProvisioningContext:
    workspace: WorkspacePaths
    network: NetworkConfig
    director: DirectorConfig
    pcfdev: PcfDevConfig
    uaa: UaaConfig
    resolver: ToolResolver
    state: StateStore
    tools: Tools
    cloud_config: Path = DEFAULT_CLOUD_CONFIG
    host_interface: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProvisioningContext":
        workspace = WorkspacePaths(settings.work_root)
        resolver = ToolResolver([workspace.bin_dir])
        if settings.state_backend == "record":
            state: StateStore = StateRecord(director=settings.director.name)
        else:
            state = VarsStoreMarker(workspace.vars_store)
        return cls(
            workspace=workspace,
            network=settings.network,
            director=settings.director,
            pcfdev=settings.pcfdev,
            uaa=settings.uaa,
            resolver=resolver,
            state=state,
            tools=Tools.create(resolver),
            cloud_config=settings.cloud_config or DEFAULT_CLOUD_CONFIG,
        )


class StepOutcome(enum.Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"


class Step:
    """One provisioning step. Fatal conditions raise ProvisioningError."""

    title = ""

    def run(self, ctx: ProvisioningContext) -> StepOutcome:
        raise NotImplementedError


class Pipeline:
    def __init__(self, steps: Sequence[Step]) -> None:
        self.steps = list(steps)

    def run(self, ctx: ProvisioningContext) -> list[tuple[str, StepOutcome]]:
        """Run every step in order, stopping at the first fatal error."""
        report: list[tuple[str, StepOutcome]] = []
        total = len(self.steps)
        for index, step in enumerate(self.steps, start=1):
            click.echo(f"\n=== Step {index}/{total}: {step.title} ===")
            outcome = step.run(ctx)
            report.append((step.title, outcome))
        return report
