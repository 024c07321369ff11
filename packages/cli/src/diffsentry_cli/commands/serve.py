"""serve command — run the webhook receiver."""

from __future__ import annotations

import click
from rich.console import Console

console = Console()


@click.command("serve")
@click.option("--host", default=None, help="Interface to bind. Overrides config file.")
@click.option("--port", type=int, default=None, help="Port to listen on. Overrides config file.")
@click.pass_context
def serve_cmd(ctx, host: str | None, port: int | None):
    """Receive GitHub pull_request webhooks at POST /webhook and review on delivery."""
    import uvicorn

    from diffsentry_cli.cli import build_pipeline, require_credentials
    from diffsentry_cli.server import create_app

    config = ctx.obj["config"]
    require_credentials(config)

    pipeline = build_pipeline(config)
    app = create_app(pipeline.dispatcher, pipeline.tracker, config)

    host = host or config.get("host", "0.0.0.0")
    port = port or config.get("port", 3000)
    if not config.get("webhook_secret"):
        console.print("[yellow]No GITHUB_WEBHOOK_SECRET configured - webhook signature verification disabled.[/yellow]")
    console.print(f"[green]Webhook URL: http://{host}:{port}/webhook[/green]")

    uvicorn.run(app, host=host, port=port)
