from __future__ import annotations

import click

from boshtools.common import ProvisioningError, success
from boshtools.config import PcfDevConfig, UaaConfig, load_settings
from boshtools.pipeline import ProvisioningContext
from boshtools.tools import PCFDEV_URL, CfDev, Uaac


def start_pcfdev(cfdev: CfDev, pcfdev: PcfDevConfig) -> None:
    """Start PCF Dev from scratch, destroying a running instance first."""
    if not cfdev.available():
        raise ProvisioningError(
            "PCFDev does not exist.",
            hint=f"Visit {PCFDEV_URL} to download and install PCFDev",
        )
    if cfdev.running():
        cfdev.destroy()

    success("Starting PCFDev ...")
    cfdev.start(pcfdev)
    success("Done.\n")


def create_uaa_client(uaac: Uaac, uaa: UaaConfig) -> bool:
    """
    Register the broker client with the PCF Dev UAA.

    Returns False when the client was already registered.
    """
    success(f"Creating UAA client {uaa.client} ...")
    uaac.target(uaa)
    uaac.login_client(uaa)

    if uaac.client_exists(uaa.client):
        click.echo(f"UAA client {uaa.client} already exists.")
        return False

    uaac.add_client(uaa).raise_for_status(f"Failed to add UAA client {uaa.client}")
    success("Done.\n")
    return True


@click.group(help="PCF Dev helpers.")
@click.pass_context
def cli(ctx: click.Context) -> None:
    ctx.ensure_object(dict)
    if "context" not in ctx.obj:
        settings = ctx.obj.get("settings") or load_settings()
        ctx.obj["context"] = ProvisioningContext.from_settings(settings)


@cli.command("start", help="(Re)start PCF Dev on the address the director expects.")
@click.pass_context
def start_cmd(ctx: click.Context) -> None:
    context = ctx.obj["context"]
    start_pcfdev(context.tools.cfdev, context.pcfdev)


@cli.command("uaa-client", help="Create the cloudcache broker UAA client.")
@click.pass_context
def uaa_client_cmd(ctx: click.Context) -> None:
    context = ctx.obj["context"]
    create_uaa_client(context.tools.uaac, context.uaa)
