"""Shared utilities for all CLI command modules.

Provides the Rich console instance, the per-invocation context, and
the error reporting used by every command.
"""

from __future__ import annotations

import logging
import socket
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn, Optional

import click
from rich.console import Console

from .. import DEFAULT_SECRETS_ROOT
from ..config import ValidatedConfig, load_config
from ..errors import SecretsError

console = Console()
logger = logging.getLogger("sksecrets.cli")

SECRETS_ROOT = DEFAULT_SECRETS_ROOT


@dataclass
class CliContext:
    """Options shared by every command of one invocation."""

    config_path: Optional[Path]
    profile: str

    def load(self) -> ValidatedConfig:
        """Load and validate the config, exiting on failure."""
        try:
            return load_config(self.config_path)
        except SecretsError as exc:
            fail(exc)


def default_profile() -> str:
    """Default profile name: the short host name."""
    return socket.gethostname().split(".")[0]


def current_executable() -> Optional[Path]:
    """Path of the running program, if it is a regular file."""
    exe = Path(sys.argv[0]) if sys.argv and sys.argv[0] else None
    if exe is None or not exe.is_file():
        return None
    return exe.resolve()


def fail(exc: SecretsError, unreliable: Optional[Path] = None) -> NoReturn:
    """Report an error to the operator and exit non-zero.

    Args:
        exc: The error that stopped the run.
        unreliable: Tree left partially written, if any.
    """
    logger.error("%s", exc)
    console.print(f"[bold red]Error:[/] {exc}", highlight=False)
    if unreliable is not None:
        console.print(
            f"[yellow]The tree at '{unreliable}' may be partially written and "
            "should be considered unreliable. Discard it and start over.[/]",
            highlight=False,
        )
    raise SystemExit(1)


pass_context = click.make_pass_decorator(CliContext)
