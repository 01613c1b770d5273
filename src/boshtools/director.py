from __future__ import annotations

import dataclasses
import subprocess
from collections.abc import Mapping
from pathlib import Path

from boshtools import common
from boshtools.common import ProvisioningError
from boshtools.config import DirectorConfig, NetworkConfig
from boshtools.tools import ToolResolver

DATA_DIR = Path(__file__).resolve().parent / "data"
STORE_DIR_OPS_FILE = DATA_DIR / "vbox-store-dir.yml"
DEFAULT_CLOUD_CONFIG = DATA_DIR / "cloud-config.yml"

BASE_MANIFEST = "bosh.yml"
VARS_STORE_NAME = "bosh-director-vars"
PROFILE_NAME = "bosh_variables"


@dataclasses.dataclass(frozen=True)
class DeployManifest:
    """A base manifest, its ordered ops files and the variables to apply."""

    manifest: str
    ops_files: tuple[str, ...]
    vars_store: str
    variables: tuple[tuple[str, str], ...]

    def arguments(self) -> list[str]:
        args = [self.manifest]
        for ops_file in self.ops_files:
            args.extend(["-o", ops_file])
        args.extend(["--vars-store", self.vars_store])
        for name, value in self.variables:
            args.extend(["-v", f"{name}={value}"])
        return args


def build_deploy_manifest(
    director: DirectorConfig,
    network: NetworkConfig,
    interface: str,
    *,
    store_dir_ops_file: Path = STORE_DIR_OPS_FILE,
) -> DeployManifest:
    """Return the BOSH Lite on VirtualBox manifest with garden-runc."""
    return DeployManifest(
        manifest=BASE_MANIFEST,
        ops_files=(
            "virtualbox/cpi.yml",
            str(store_dir_ops_file),
            "bosh-lite.yml",
            "virtualbox/outbound-network.yml",
            "jumpbox-user.yml",
            "bosh-lite-runc.yml",
        ),
        vars_store=VARS_STORE_NAME,
        variables=(
            ("outbound_network_name", network.name),
            ("director_name", director.name),
            ("internal_ip", director.internal_ip),
            ("internal_gw", director.internal_gw),
            ("internal_cidr", director.internal_cidr),
            ("network_name", interface),
            ("store_dir", str(Path(director.store_dir).expanduser())),
        ),
    )


class Bosh:
    """The v2 BOSH CLI, installed as ``gbosh``."""

    command = "gbosh"

    def __init__(self, resolver: ToolResolver) -> None:
        self.resolver = resolver

    def create_env(self, manifest: DeployManifest, *, cwd: Path) -> None:
        gbosh = self.resolver.require(self.command)
        try:
            common.run(
                [gbosh, "create-env", *manifest.arguments()], stream=True, cwd=cwd
            )
        except subprocess.CalledProcessError as exc:
            raise ProvisioningError(
                f"Deploying the BOSH director failed (exit code {exc.returncode})."
            ) from exc

    def update_cloud_config(
        self, cloud_config: Path, *, env: Mapping[str, str]
    ) -> None:
        gbosh = self.resolver.require(self.command)
        try:
            common.run(
                [gbosh, "-n", "update-cloud-config", str(cloud_config)],
                stream=True,
                env=env,
            )
        except subprocess.CalledProcessError as exc:
            raise ProvisioningError(
                f"Uploading the cloud config failed (exit code {exc.returncode})."
            ) from exc
