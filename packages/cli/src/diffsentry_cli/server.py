"""FastAPI webhook receiver.

GitHub expects a quick 2xx, so the review itself runs as a background task
after the response is sent. The dispatcher and tracker are the same objects
the poll loop would use, built once by the CLI and passed in here.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable

from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.responses import JSONResponse

from diffsentry_core.triggers import parse_pull_request_event

if TYPE_CHECKING:
    from diffsentry_core.triggers import PullRequestEvent, ReviewDispatcher
    from diffsentry_store.base import BaseTracker

logger = logging.getLogger(__name__)

# Give GitHub a moment to finish processing a push before fetching the diff.
SYNCHRONIZE_DELAY = 2


def verify_signature(secret: str, body: bytes, signature: str | None) -> bool:
    """Check a GitHub ``X-Hub-Signature-256`` header against the raw body."""
    if not signature or not signature.startswith("sha256="):
        return False
    expected = "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


def sweep_tracker(tracker: BaseTracker) -> int:
    """Run one tracker sweep; a failure is logged and the periodic task keeps going."""
    try:
        return tracker.sweep()
    except Exception:
        logger.exception("Tracker sweep failed")
        return 0


def create_app(
    dispatcher: ReviewDispatcher,
    tracker: BaseTracker,
    config: dict,
    sleep: Callable[[float], None] = time.sleep,
) -> FastAPI:
    webhook_secret = config.get("webhook_secret") or ""
    sweep_interval = config.get("sweep_interval", 3600)
    started = time.monotonic()

    async def _sweep_periodically():
        while True:
            await asyncio.sleep(sweep_interval)
            sweep_tracker(tracker)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        task = asyncio.create_task(_sweep_periodically())
        try:
            yield
        finally:
            task.cancel()

    app = FastAPI(title="diffsentry", lifespan=lifespan)

    def _review(event: PullRequestEvent) -> None:
        slug = f"{event.owner}/{event.repo}#{event.number}"
        try:
            if event.action == "synchronize":
                sleep(SYNCHRONIZE_DELAY)
            if dispatcher.review_if_changed(event.owner, event.repo, event.number, event.head_sha):
                logger.info("Completed AI review for %s (commit %s)", slug, event.head_sha[:7])
        except Exception as e:
            logger.error("Failed to review %s: %s", slug, e)

    @app.post("/webhook")
    async def webhook(request: Request, background_tasks: BackgroundTasks):
        body = await request.body()

        if webhook_secret and not verify_signature(
            webhook_secret, body, request.headers.get("X-Hub-Signature-256")
        ):
            logger.warning("Invalid webhook signature")
            return JSONResponse(status_code=401, content={"error": "Invalid signature"})

        try:
            payload = json.loads(body or b"{}")
        except ValueError:
            return JSONResponse(status_code=400, content={"error": "Invalid JSON payload"})

        event = parse_pull_request_event(payload) if isinstance(payload, dict) else None
        if event is None:
            return {"message": "Not a pull request event"}
        if not event.is_relevant:
            return {"message": f"Ignoring action: {event.action}"}

        slug = f"{event.owner}/{event.repo}#{event.number}"
        logger.info("Webhook received: %s %s", event.action, slug)

        if dispatcher.is_reviewed(event.owner, event.repo, event.number, event.head_sha):
            return {
                "message": "PR already reviewed for this commit",
                "pr": slug,
                "commit": event.head_sha[:7],
            }

        background_tasks.add_task(_review, event)
        return {"message": "Webhook received, processing PR review", "pr": slug, "action": event.action}

    @app.get("/health")
    async def health():
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.get("/status")
    async def status():
        return {
            "status": "running",
            "mode": "webhook",
            "uptime": round(time.monotonic() - started, 1),
            "processed_prs": len(tracker),
            "config": {
                "model": config.get("model"),
                "max_files": config.get("max_files"),
                "max_lines_per_file": config.get("max_lines_per_file"),
                "webhook_secret_configured": bool(webhook_secret),
            },
        }

    return app
