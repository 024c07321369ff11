"""poll command — watch repositories and review every new head commit."""

from __future__ import annotations

import logging
import time

import click
from rich.console import Console

logger = logging.getLogger(__name__)
console = Console()


def run_polling(scanner, tracker, poll_interval: float, sweep_interval: float, sleep=time.sleep, clock=time.monotonic):
    """Scan forever: one pass every ``poll_interval`` seconds, a tracker sweep every ``sweep_interval``."""
    last_sweep = clock()
    while True:
        logger.info("Scanning for new PRs...")
        scanner.scan_all()
        if clock() - last_sweep >= sweep_interval:
            tracker.sweep()
            last_sweep = clock()
        sleep(poll_interval)


@click.command("poll")
@click.option("--interval", type=int, default=None, help="Seconds between scans. Overrides config file.")
@click.option("--once", is_flag=True, help="Run a single scan and exit.")
@click.pass_context
def poll_cmd(ctx, interval: int | None, once: bool):
    """Poll the configured repositories for new or updated pull requests."""
    from diffsentry_cli.cli import build_pipeline, require_credentials
    from diffsentry_core.triggers import PollingScanner

    config = ctx.obj["config"]
    require_credentials(config)

    repositories = config.get("repositories") or []
    if not repositories:
        raise click.UsageError("No repositories configured. Add 'repositories: [owner/name]' to the config file.")

    pipeline = build_pipeline(config)
    scanner = PollingScanner(
        pipeline.client,
        pipeline.dispatcher,
        repositories,
        review_delay=config.get("review_delay", 5),
    )

    console.print(f"[cyan]Watching {len(repositories)} repositor(ies): {', '.join(repositories)}[/cyan]")

    if once:
        reviewed = scanner.scan_all()
        console.print(f"[green]Scan complete. {reviewed} pull request(s) reviewed.[/green]")
        return

    poll_interval = interval or config.get("poll_interval", 120)
    console.print(f"[green]Polling every {poll_interval}s. Press Ctrl+C to stop.[/green]")
    try:
        run_polling(scanner, pipeline.tracker, poll_interval, config.get("sweep_interval", 3600))
    except KeyboardInterrupt:
        console.print("\n[yellow]Shutting down.[/yellow]")
