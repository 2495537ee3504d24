# src/rotator_client/cli.py

import argparse
import asyncio
import sys
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import load_env_files, resolve_settings
from .rotation_client import RotationClient, mask_secret
from .types import RotationResult
from .utils.log_setup import setup_logging

console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rotator-client",
        description="Talk to the local key rotation service.",
    )
    parser.add_argument("--service-url", type=str, default=None, help="Rotation service URL.")
    parser.add_argument("--env", type=str, default=None, help="Environment name sent with rotations.")
    parser.add_argument("--service", type=str, default=None, help="Service name sent with rotations.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("health", help="Check that the rotation service is reachable.")
    rotate_parser = subparsers.add_parser("rotate", help="Rotate a secret now.")
    rotate_parser.add_argument("secret_name", help="Environment variable name of the secret.")
    return parser


def _pool_status_table(result: RotationResult) -> Table:
    table = Table(title="Key Pool", show_header=True, header_style="bold cyan")
    table.add_column("Total")
    table.add_column("Available")
    table.add_column("Exhausted")
    table.add_column("Current Index")
    status = result.pool_status
    table.add_row(
        str(status.total_keys),
        str(status.available_keys),
        str(status.exhausted_keys),
        str(status.current_index),
    )
    return table


async def _run(args: argparse.Namespace) -> int:
    load_env_files()
    settings = resolve_settings()
    overrides = {
        "service_url": args.service_url.rstrip("/") if args.service_url else None,
        "environment": args.env,
        "service_name": args.service,
    }
    settings = settings.model_copy(
        update={key: value for key, value in overrides.items() if value is not None}
    )
    # Explicit CLI use always talks to the service, whatever ROTATOR_ENABLED says
    settings = settings.model_copy(update={"enabled": True})
    client = RotationClient(settings=settings)

    if args.command == "health":
        with console.status(f"[dim]Checking {settings.service_url}...", spinner="dots"):
            healthy = await client.check_health()
        if healthy:
            console.print(f"[bold green]✓ Rotation service is healthy[/bold green] ({settings.service_url})")
            return 0
        console.print(f"[bold red]✗ Rotation service is unreachable[/bold red] ({settings.service_url})")
        return 1

    with console.status(f"[dim]Rotating {args.secret_name}...", spinner="dots"):
        result = await client.rotate(args.secret_name)

    if result.success and result.new_value:
        success_text = (
            f"Rotated [bold cyan]{args.secret_name}[/bold cyan] "
            f"in [bold yellow]{settings.environment}[/bold yellow]\n"
            f"New value: {mask_secret(result.new_value)}"
        )
        console.print(Panel(success_text, style="bold green", title="Success"))
        if result.pool_status:
            console.print(_pool_status_table(result))
        return 0

    console.print(
        Panel(
            result.message or "Rotation service returned no new value.",
            style="bold red",
            title="Rotation Failed",
        )
    )
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.debug:
        setup_logging(debug=True)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
