"""init command — interactive setup wizard.

Writes .diffsentry.yml with the model provider, the repositories to watch and
the trigger mode, then prints the environment variables still needed.
"""

from __future__ import annotations

import re
import subprocess
from pathlib import Path

import click
import yaml
from rich.console import Console

console = Console()


@click.command("init")
@click.option("--repo", default=None, help="GitHub repository (owner/name). Auto-detected from git remote.")
@click.pass_context
def init_cmd(ctx, repo: str | None):
    """Set up diffsentry: choose a provider, repositories and a trigger mode."""
    from diffsentry_core.config import api_key_env_for, parse_repository

    config_path = Path((ctx.obj or {}).get("config_path", ".diffsentry.yml"))
    console.print("\n[bold cyan]diffsentry init[/bold cyan] — setup wizard\n")

    if config_path.exists() and not click.confirm(f"{config_path} already exists. Update it?", default=False):
        console.print("Setup cancelled.")
        return

    if repo is None:
        repo = _detect_repo_from_git()
        if repo:
            console.print(f"[dim]Detected repository: {repo}[/dim]")

    raw = click.prompt("Repositories to watch (comma-separated owner/name)", default=repo or "")
    repositories = [r.strip() for r in raw.split(",") if r.strip()]
    for slug in repositories:
        try:
            parse_repository(slug)
        except ValueError as e:
            raise click.BadParameter(str(e))

    provider = click.prompt(
        "AI provider",
        type=click.Choice(["gemini", "anthropic", "openai"]),
        default="gemini",
    )

    console.print("\nTrigger mode:")
    console.print("  [bold]poll[/bold]     — simpler setup, checks every 2 minutes")
    console.print("  [bold]webhook[/bold]  — real-time, GitHub calls POST /webhook")
    mode = click.prompt("Mode", type=click.Choice(["poll", "webhook"]), default="poll")

    _write_config(config_path, {"model": provider, "repositories": repositories})
    console.print(f"[green]Wrote {config_path}[/green]")

    console.print("\n[bold]Set these environment variables before starting:[/bold]")
    console.print("  GITHUB_TOKEN (or run `gh auth login`)")
    console.print(f"  {api_key_env_for(provider)}")
    if mode == "webhook":
        console.print("  GITHUB_WEBHOOK_SECRET (recommended)")
        console.print("\nThen run: [bold]diffsentry serve[/bold] and point a 'Pull requests' webhook at /webhook")
    else:
        console.print("\nThen run: [bold]diffsentry poll[/bold]")


# Matches both remote forms: https://github.com/owner/name(.git) and git@github.com:owner/name(.git)
_GITHUB_REMOTE = re.compile(r"github\.com[/:](?P<slug>[^/\s]+/[^/\s]+?)(?:\.git)?/?$")


def _detect_repo_from_git() -> str | None:
    """Return owner/name of the origin remote when it points at GitHub."""
    try:
        result = subprocess.run(["git", "remote", "get-url", "origin"], capture_output=True, text=True, timeout=5)
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    match = _GITHUB_REMOTE.search(result.stdout.strip())
    return match.group("slug") if match else None


def _write_config(path: Path, config: dict) -> None:
    """Write or update the config file, preserving any existing keys."""
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))
