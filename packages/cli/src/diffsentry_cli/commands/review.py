"""review command — review a single pull request now."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from diffsentry_core.config import parse_repository

console = Console()

_SEVERITY_STYLE = {"error": "red", "warning": "yellow", "info": "blue"}


def print_summary(summary) -> None:
    if summary is None:
        console.print("[yellow]Nothing to review (draft, closed, or no reviewable files).[/yellow]")
        return

    if not summary.comments:
        console.print(f"[green]No new issues found in {summary.repo}#{summary.pr_number}.[/green]")
    else:
        table = Table(title=f"Findings — {summary.repo}#{summary.pr_number}", header_style="bold cyan")
        table.add_column("File")
        table.add_column("Line", justify="right")
        table.add_column("Severity")
        table.add_column("Message", max_width=60)
        for c in summary.comments:
            style = _SEVERITY_STYLE.get(c.severity, "white")
            table.add_row(c.path, str(c.line), f"[{style}]{c.severity.upper()}[/{style}]", c.message)
        console.print(table)

    if summary.failed_files:
        console.print(f"[red]Could not review: {', '.join(summary.failed_files)}[/red]")
    if summary.post_error:
        console.print(f"[red]GitHub rejected the review: {escape(summary.post_error)}[/red]")
    if summary.posted:
        console.print(f"[green]Review posted with {len(summary.comments)} comment(s).[/green]")


@click.command("review")
@click.option("--repo", required=True, help="GitHub repository in owner/name format.")
@click.option("--pr", "pr_number", type=int, required=True, help="Pull request number.")
@click.option(
    "--model",
    type=click.Choice(["gemini", "anthropic", "openai"]),
    default=None,
    help="AI model provider. Overrides config file.",
)
@click.pass_context
def review_cmd(ctx, repo: str, pr_number: int, model: str | None):
    """Review one pull request and post the findings as a COMMENT review.

    \b
    Required environment variables:
      GITHUB_TOKEN         GitHub token (or use gh CLI)
      GEMINI_API_KEY       Required when using --model gemini (default)
      ANTHROPIC_API_KEY    Required when using --model anthropic
      OPENAI_API_KEY       Required when using --model openai
    """
    from diffsentry_cli.cli import build_pipeline, require_credentials

    config = dict(ctx.obj["config"])
    if model:
        config["model"] = model
    require_credentials(config)

    try:
        owner, name = parse_repository(repo)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--repo")

    pipeline = build_pipeline(config)
    summary = pipeline.reviewer.review_pull_request(owner, name, pr_number)
    print_summary(summary)
