"""Import command."""

from __future__ import annotations

from pathlib import Path

import click
from rich.table import Table

from ._common import CliContext, SECRETS_ROOT, console, fail, pass_context
from ..errors import SecretsError

_DIR = click.Path(exists=True, file_okay=False, path_type=Path)


def register_import_commands(main: click.Group) -> None:
    """Register the import command."""

    @main.command("import")
    @click.argument("source", type=_DIR)
    @click.option(
        "--target", "-t", default=SECRETS_ROOT, show_default=True,
        envvar="SKSECRETS_TARGET", type=_DIR, help="Secrets directory to populate.",
    )
    @click.option(
        "--passphrase", prompt="Enter passphrase", hide_input=True,
        envvar="SKSECRETS_PASSPHRASE", help="Decryption passphrase (prompted when omitted).",
    )
    @pass_context
    def import_cmd(ctx: CliContext, source: Path, target: Path, passphrase: str):
        """Import the profile's secrets from the export at SOURCE.

        Examples:

            sksecrets import /mnt/usb/secrets

            sksecrets -p desktop import /mnt/usb/secrets -t ~/secrets
        """
        from ..importer import import_secrets

        config = ctx.load()
        console.print(f"\n[cyan]Importing profile [bold]{ctx.profile}[/] from {source}...[/]")
        try:
            report = import_secrets(ctx.profile, source, target, config, passphrase)
        except SecretsError as exc:
            fail(exc, unreliable=target)

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("Secret", style="cyan")
        table.add_column("Status")
        for path in report.written:
            table.add_row(path, "[green]imported[/]")
        for path in report.unchanged:
            table.add_row(path, "[dim]unchanged[/]")
        for path in report.linked:
            table.add_row(path, "[blue]linked[/]")

        console.print(table)
        console.print(f"\n[bold green]Import complete[/] into {report.target}\n")
