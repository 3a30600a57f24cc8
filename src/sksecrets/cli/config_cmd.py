"""Config command: validate and summarize the config file."""

from __future__ import annotations

import click
from rich.table import Table

from ._common import CliContext, console, pass_context


def register_config_commands(main: click.Group) -> None:
    """Register the check-config command."""

    @main.command("check-config")
    @pass_context
    def check_config(ctx: CliContext):
        """Validate the config and show what each profile owns and imports."""
        config = ctx.load()

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("Profile", style="cyan")
        table.add_column("Secrets")
        table.add_column("Imports")
        table.add_column("Symlinks", style="dim")
        for profile in config.profiles():
            link_dir = config.symlink_dir(profile)
            table.add_row(
                profile,
                ", ".join(config.secrets_for(profile)) or "-",
                ", ".join(config.imports_for(profile)) or "-",
                str(link_dir) if link_dir else "-",
            )

        console.print("\n[bold green]Config is valid[/]\n")
        console.print(table)
        console.print()
