"""CLI entry point for diffsentry.

Commands:
  review  — review a single pull request now
  poll    — watch the configured repositories and review new commits
  serve   — receive GitHub pull_request webhooks and review on delivery
  init    — interactive setup wizard writing .diffsentry.yml
"""

from __future__ import annotations

import importlib.metadata
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.logging import RichHandler

from diffsentry_cli.commands.init import init_cmd
from diffsentry_cli.commands.poll import poll_cmd
from diffsentry_cli.commands.review import review_cmd
from diffsentry_cli.commands.serve import serve_cmd

if TYPE_CHECKING:
    from diffsentry_core.gh.pull_request import RepositoryClient
    from diffsentry_core.reviewer import PullRequestReviewer
    from diffsentry_core.triggers import ReviewDispatcher
    from diffsentry_store.base import BaseTracker

console = Console()


@dataclass
class Pipeline:
    """Long-lived objects shared by every trigger in one process."""

    client: RepositoryClient
    reviewer: PullRequestReviewer
    tracker: BaseTracker
    dispatcher: ReviewDispatcher


def require_credentials(config: dict) -> None:
    """Raise a UsageError naming the first missing credential."""
    from diffsentry_core.config import api_key_env_for

    if not config.get("github_token"):
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )
    provider = config["model"]
    if provider not in ("gemini", "anthropic", "openai"):
        raise click.UsageError(f"Unknown model provider {provider!r}. Choose gemini, anthropic or openai.")
    if not config.get(f"{provider}_api_key"):
        raise click.UsageError(f"{api_key_env_for(provider)} environment variable is not set.")


def build_pipeline(config: dict) -> Pipeline:
    """Construct the repository client, model, reviewer, tracker and dispatcher once.

    This factory lives in cli.py so neither diffsentry_core nor
    diffsentry_store know about each other or about the config file format.
    """
    from diffsentry_core.gh.pull_request import RepositoryClient, get_github
    from diffsentry_core.providers import get_model_client
    from diffsentry_core.reviewer import PullRequestReviewer
    from diffsentry_core.triggers import ReviewDispatcher
    from diffsentry_store.memory import MemoryTracker

    client = RepositoryClient(get_github(config["github_token"]))
    reviewer = PullRequestReviewer(client, get_model_client(config), config)
    tracker = MemoryTracker(retention=timedelta(days=config.get("retention_days", 7)))
    return Pipeline(
        client=client,
        reviewer=reviewer,
        tracker=tracker,
        dispatcher=ReviewDispatcher(reviewer, tracker),
    )


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("diffsentry"),
    prog_name="diffsentry",
)
@click.option(
    "--config",
    "config_path",
    default=".diffsentry.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="DIFFSENTRY_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging (includes raw model responses).")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Self-hosted AI pull request reviewer."""
    from diffsentry_core.config import load_config
    from diffsentry_cli.auth import resolve_github_token

    ctx.ensure_object(dict)
    _configure_logging(verbose)

    try:
        config = load_config(config_path)
    except ValueError as e:
        raise click.UsageError(str(e))

    config["github_token"] = resolve_github_token(config)
    ctx.obj["config"] = config
    ctx.obj["config_path"] = config_path


main.add_command(review_cmd)
main.add_command(poll_cmd)
main.add_command(serve_cmd)
main.add_command(init_cmd)
