"""
SKSecrets CLI — export and import secrets from the command line.

The main Click group is defined here and every command is registered
from its own module.

Entry point: sksecrets.cli:main
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import click

from .. import __version__
from ._common import CliContext, default_profile


@click.group()
@click.version_option(version=__version__, prog_name="sksecrets")
@click.option(
    "--config", "-c", "config_path", default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file (default: $SKSECRETS_CONFIG, ~/.config/sksecrets/sksecrets.yaml, ./sksecrets.yaml).",
)
@click.option(
    "--profile", "-p", default=None, envvar="SKSECRETS_PROFILE",
    help="Profile whose settings to use [default: host name].",
)
@click.option("--verbose", "-v", is_flag=True, help="Log every step.")
@click.pass_context
def main(ctx: click.Context, config_path: Optional[Path], profile: Optional[str], verbose: bool):
    """SKSecrets — move secrets between hosts, encrypted and verified.

    Export a profile's secrets into a portable encrypted tree.
    Import them back on another host. Nothing is ever overwritten.
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
    ctx.obj = CliContext(
        config_path=config_path,
        profile=profile or default_profile(),
    )


# ---------------------------------------------------------------------------
# Register all commands from modular files
# ---------------------------------------------------------------------------

from .export import register_export_commands
from .import_cmd import register_import_commands
from .checksum_cmd import register_checksum_commands
from .config_cmd import register_config_commands

register_export_commands(main)
register_import_commands(main)
register_checksum_commands(main)
register_config_commands(main)
