"""Checksum command: seal source secrets with .sha256 sidecars."""

from __future__ import annotations

from pathlib import Path

import click

from ._common import CliContext, SECRETS_ROOT, console, fail, pass_context
from ..errors import SecretsError

_DIR = click.Path(exists=True, file_okay=False, path_type=Path)


def register_checksum_commands(main: click.Group) -> None:
    """Register the checksum command."""

    @main.command("checksum")
    @click.option(
        "--source", "-s", default=SECRETS_ROOT, show_default=True,
        envvar="SKSECRETS_SOURCE", type=_DIR, help="Secrets directory.",
    )
    @pass_context
    def checksum_cmd(ctx: CliContext, source: Path):
        """Write .sha256 sidecars and sha256sums.txt for the profile's secrets.

        Run this whenever a secret changes; export refuses secrets
        whose sidecar does not match.
        """
        from .. import checksum

        config = ctx.load()
        try:
            config.require_profile(ctx.profile)
            paths = config.export_paths(ctx.profile)
            for relative_path in paths:
                checksum.append(source, relative_path, sidecar=True)
                console.print(f"  [green]sealed[/] {relative_path}", highlight=False)
        except SecretsError as exc:
            fail(exc)

        console.print(f"\n[bold]{len(paths)}[/] secret(s) checksummed in {source}\n")
