"""Export commands: export, verify."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click
from rich.panel import Panel

from ._common import CliContext, SECRETS_ROOT, console, current_executable, fail, pass_context
from ..errors import SecretsError

_DIR = click.Path(exists=True, file_okay=False, path_type=Path)


def register_export_commands(main: click.Group) -> None:
    """Register the export and verify commands."""

    @main.command("export")
    @click.argument("target", type=_DIR)
    @click.option(
        "--source", "-s", default=SECRETS_ROOT, show_default=True,
        envvar="SKSECRETS_SOURCE", type=_DIR, help="Secrets directory.",
    )
    @click.option(
        "--executable", default=None, type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="Program to ship with the export [default: the running sksecrets].",
    )
    @click.option("--no-executable", is_flag=True, help="Do not ship the program.")
    @click.option(
        "--passphrase", prompt="Enter passphrase", hide_input=True,
        confirmation_prompt="Enter passphrase again", envvar="SKSECRETS_PASSPHRASE",
        help="Encryption passphrase (prompted when omitted).",
    )
    @pass_context
    def export_cmd(
        ctx: CliContext,
        target: Path,
        source: Path,
        executable: Optional[Path],
        no_executable: bool,
        passphrase: str,
    ):
        """Export the profile's secrets to TARGET, encrypted.

        Every secret must have a .sha256 sidecar in the source
        (see 'sksecrets checksum').

        Examples:

            sksecrets export /mnt/usb/secrets

            sksecrets -p laptop export -s ~/secrets /mnt/usb/secrets
        """
        from ..exporter import export_secrets

        config = ctx.load()
        if no_executable:
            executable = None
        elif executable is None:
            executable = current_executable()

        console.print(f"\n[cyan]Exporting profile [bold]{ctx.profile}[/] to {target}...[/]")
        try:
            report = export_secrets(
                ctx.profile, source, target, config, passphrase, executable=executable,
            )
        except SecretsError as exc:
            fail(exc, unreliable=target)

        lines = [f"  [green]+[/] {p}" for p in report.written]
        lines += [f"  [dim]= {p} (already exported)[/]" for p in report.skipped]
        lines += [f"  [blue]*[/] {p}" for p in report.additional]
        console.print(Panel(
            "\n".join(lines + ["", f"Verified {report.verified} checksums"]),
            title="Export Complete",
            border_style="green",
        ))

    @main.command("verify")
    @click.argument("source", type=_DIR)
    def verify_cmd(source: Path):
        """Verify the integrity of an existing export.

        Already done at the end of every export and at the start of
        every import.
        """
        from ..exporter import verify_export

        try:
            count = verify_export(source)
        except SecretsError as exc:
            fail(exc)
        console.print(f"[green]Export integrity verified[/] ({count} checksums)")
