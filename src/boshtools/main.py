from __future__ import annotations

import subprocess
import sys

import click

from boshtools.common import success
from boshtools.config import load_settings
from boshtools.pcfdev import cli as pcfdev_cli
from boshtools.pipeline import Pipeline, ProvisioningContext
from boshtools.steps import WriteCredentials, default_steps


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """boshtools main entrypoint."""
    ctx.ensure_object(dict)
    ctx.obj["settings"] = load_settings()


@cli.command(
    "setup",
    help="Provision BOSH Lite next to PCF Dev: tools, network, director, route, cloud config.",
)
@click.pass_context
def setup(ctx: click.Context) -> None:
    context = ProvisioningContext.from_settings(ctx.obj["settings"])
    Pipeline(default_steps()).run(context)
    success(
        f"Please run `source {context.workspace.profile}` then use `gbosh` "
        "to interact with the bosh director."
    )


@cli.command("credentials", help="Regenerate the director credentials profile.")
@click.pass_context
def credentials_cmd(ctx: click.Context) -> None:
    context = ProvisioningContext.from_settings(ctx.obj["settings"])
    Pipeline([WriteCredentials()]).run(context)
    success(f"Please run `source {context.workspace.profile}`.")


cli.add_command(pcfdev_cli, name="pcfdev")


def main() -> None:
    try:
        cli(obj={})
    except subprocess.CalledProcessError as e:
        if e.stdout:
            print(e.stdout)
        if e.stderr:
            print(e.stderr, file=sys.stderr)
        sys.exit(e.returncode)


if __name__ == "__main__":
    main()
