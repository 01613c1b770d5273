from __future__ import annotations

from boshtools import credentials, installer, network
from boshtools.common import ProvisioningError, info, success
from boshtools.director import build_deploy_manifest
from boshtools.pipeline import ProvisioningContext, Step, StepOutcome
from boshtools.tools import PCFDEV_URL, VIRTUALBOX_URL, Status


class CheckHypervisor(Step):
    title = "Checking for VirtualBox"

    def run(self, ctx: ProvisioningContext) -> StepOutcome:
        if not ctx.tools.vboxmanage.installed():
            raise ProvisioningError(
                "Please install virtualbox.", hint=f"Download it from {VIRTUALBOX_URL}"
            )
        return StepOutcome.COMPLETED


class CreateWorkspace(Step):
    title = "Creating working directories"

    def run(self, ctx: ProvisioningContext) -> StepOutcome:
        ctx.workspace.create()
        info(f"Using {ctx.workspace.root}")
        return StepOutcome.COMPLETED


class CheckPcfDev(Step):
    title = "Checking for PCF Dev"

    def run(self, ctx: ProvisioningContext) -> StepOutcome:
        if not ctx.tools.cfdev.available():
            raise ProvisioningError(
                "PCFDev does not exist.",
                hint=f"Visit {PCFDEV_URL} to download and install PCFDev",
            )
        success("PCFDev exists. Moving on...")
        return StepOutcome.COMPLETED


class InstallDependencies(Step):
    title = "Installing dependencies"

    def __init__(self, dependencies=installer.DEFAULT_DEPENDENCIES) -> None:
        self.dependencies = tuple(dependencies)

    def run(self, ctx: ProvisioningContext) -> StepOutcome:
        installed = installer.install_dependencies(
            ctx.resolver, ctx.workspace.bin_dir, self.dependencies
        )
        return StepOutcome.COMPLETED if installed else StepOutcome.SKIPPED


class FetchDeploymentRepo(Step):
    title = "Fetching bosh-deployment"

    def run(self, ctx: ProvisioningContext) -> StepOutcome:
        checkout = ctx.workspace.deployment_dir
        if checkout.is_dir():
            info(f"{checkout} already exists, skipping clone.")
            return StepOutcome.SKIPPED
        success("Cloning bosh-deployment repo from github...")
        ctx.tools.git.clone(ctx.director.repo_url, checkout)
        success("Done.\n")
        return StepOutcome.COMPLETED


class ConfigureNatNetwork(Step):
    title = "Adding NAT network to VirtualBox"

    def run(self, ctx: ProvisioningContext) -> StepOutcome:
        vbox = ctx.tools.vboxmanage
        name = ctx.network.name
        results = [
            vbox.add_nat_network(ctx.network).raise_for_status(
                f"Failed to add NAT network {name}"
            ),
            vbox.add_dhcp_server(ctx.network).raise_for_status(
                f"Failed to add DHCP server for {name}"
            ),
        ]
        if all(result.status is Status.ALREADY_SATISFIED for result in results):
            info(f"NAT network {name} and its DHCP server already exist.")
            return StepOutcome.SKIPPED
        success("Done.\n")
        return StepOutcome.COMPLETED


class DeployDirector(Step):
    title = "Deploying the BOSH director"

    def run(self, ctx: ProvisioningContext) -> StepOutcome:
        if ctx.state.is_provisioned():
            info("BOSH director already deployed, skipping create-env.")
            return StepOutcome.SKIPPED

        gateway = ctx.director.internal_gw
        interface = network.find_host_interface(gateway)
        if interface is None:
            raise ProvisioningError(
                f"PCFDev must be running on the {gateway} vboxnet.",
                hint=(
                    "Please restart PCFDev with the following flags "
                    f"'cf dev start -d {ctx.pcfdev.domain} -i {ctx.pcfdev.ip}'"
                ),
            )
        ctx.host_interface = interface

        manifest = build_deploy_manifest(ctx.director, ctx.network, interface)
        success("Deploying BOSH Lite with garden-runc...")
        ctx.tools.bosh.create_env(manifest, cwd=ctx.workspace.deployment_dir)
        ctx.state.mark_provisioned()
        success("Done.\n")
        return StepOutcome.COMPLETED


class WriteCredentials(Step):
    title = "Writing director credentials"

    def run(self, ctx: ProvisioningContext) -> StepOutcome:
        store = credentials.read_variable_store(ctx.workspace.vars_store)
        credentials.write_credentials(store, ctx.director, ctx.workspace.profile)
        info(f"Credentials written to {ctx.workspace.profile}")
        return StepOutcome.COMPLETED


class AddDirectorRoute(Step):
    title = "Adding bosh lite route to local route table"

    def run(self, ctx: ProvisioningContext) -> StepOutcome:
        ctx.tools.routes.replace(ctx.director.route_cidr, ctx.director.internal_ip)
        success("Done.\n")
        return StepOutcome.COMPLETED


class UpdateCloudConfig(Step):
    title = "Uploading cloud config"

    def run(self, ctx: ProvisioningContext) -> StepOutcome:
        success(f"Uploading `{ctx.cloud_config}` cloud config to the director ...")
        env = credentials.read_profile(ctx.workspace.profile)
        ctx.tools.bosh.update_cloud_config(ctx.cloud_config, env=env)
        success("Done.\n")
        return StepOutcome.COMPLETED


def default_steps() -> list[Step]:
    return [
        CheckHypervisor(),
        CreateWorkspace(),
        CheckPcfDev(),
        InstallDependencies(),
        FetchDeploymentRepo(),
        ConfigureNatNetwork(),
        DeployDirector(),
        WriteCredentials(),
        AddDirectorRoute(),
        UpdateCloudConfig(),
    ]
