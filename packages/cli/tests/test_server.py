"""Tests for the webhook receiver."""

import hashlib
import hmac
import json
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from diffsentry_cli.server import SYNCHRONIZE_DELAY, create_app, sweep_tracker, verify_signature
from diffsentry_core.triggers import ReviewDispatcher
from diffsentry_store.memory import MemoryTracker

SECRET = "s3cret"


def _payload(action="opened", sha="deadbeef1234"):
    return {
        "action": action,
        "pull_request": {"number": 42, "head": {"sha": sha}},
        "repository": {"name": "api", "owner": {"login": "acme"}},
    }


def _sign(body: bytes, secret=SECRET) -> str:
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


@pytest.fixture
def reviewer():
    return MagicMock()


@pytest.fixture
def tracker():
    return MemoryTracker()


@pytest.fixture
def sleep():
    return MagicMock()


def _app(reviewer, tracker, sleep, **config):
    config.setdefault("model", "gemini")
    return create_app(ReviewDispatcher(reviewer, tracker), tracker, config, sleep=sleep)


@pytest.fixture
def client(reviewer, tracker, sleep):
    return TestClient(_app(reviewer, tracker, sleep))


class TestVerifySignature:
    def test_valid(self):
        body = b'{"a": 1}'
        assert verify_signature(SECRET, body, _sign(body)) is True

    def test_wrong_secret(self):
        body = b'{"a": 1}'
        assert verify_signature(SECRET, body, _sign(body, secret="other")) is False

    @pytest.mark.parametrize("header", [None, "", "sha1=abc", "sha256=0000"])
    def test_malformed(self, header):
        assert verify_signature(SECRET, b"{}", header) is False


class TestWebhook:
    def test_opened_triggers_review(self, client, reviewer, tracker, sleep):
        resp = client.post("/webhook", json=_payload())

        assert resp.status_code == 200
        assert resp.json() == {
            "message": "Webhook received, processing PR review",
            "pr": "acme/api#42",
            "action": "opened",
        }
        reviewer.review_pull_request.assert_called_once_with("acme", "api", 42)
        assert tracker.get("acme/api", 42).head_sha == "deadbeef1234"
        sleep.assert_not_called()

    def test_synchronize_waits_before_review(self, client, reviewer, sleep):
        client.post("/webhook", json=_payload(action="synchronize"))
        sleep.assert_called_once_with(SYNCHRONIZE_DELAY)
        reviewer.review_pull_request.assert_called_once()

    def test_ignored_action(self, client, reviewer):
        resp = client.post("/webhook", json=_payload(action="closed"))
        assert resp.json() == {"message": "Ignoring action: closed"}
        reviewer.review_pull_request.assert_not_called()

    def test_not_a_pull_request_event(self, client, reviewer):
        resp = client.post("/webhook", json={"zen": "Keep it logically awesome.", "hook_id": 1})
        assert resp.status_code == 200
        assert resp.json() == {"message": "Not a pull request event"}

    def test_invalid_json(self, client):
        resp = client.post("/webhook", content=b"{not json", headers={"Content-Type": "application/json"})
        assert resp.status_code == 400

    def test_already_reviewed_commit(self, client, reviewer):
        client.post("/webhook", json=_payload())
        resp = client.post("/webhook", json=_payload(action="reopened"))

        assert resp.json() == {
            "message": "PR already reviewed for this commit",
            "pr": "acme/api#42",
            "commit": "deadbee",
        }
        reviewer.review_pull_request.assert_called_once()

    def test_new_commit_is_reviewed(self, client, reviewer):
        client.post("/webhook", json=_payload())
        client.post("/webhook", json=_payload(action="synchronize", sha="cafebabe"))
        assert reviewer.review_pull_request.call_count == 2

    def test_review_failure_is_not_reported_to_github(self, client, reviewer, tracker):
        reviewer.review_pull_request.side_effect = RuntimeError("GitHub down")
        resp = client.post("/webhook", json=_payload())
        assert resp.status_code == 200
        assert tracker.get("acme/api", 42) is None

    def test_commit_reviewed_by_poll_is_skipped(self, client, reviewer, tracker):
        tracker.mark_reviewed("acme/api", 42, "deadbeef1234")
        resp = client.post("/webhook", json=_payload())
        assert resp.json()["message"] == "PR already reviewed for this commit"
        reviewer.review_pull_request.assert_not_called()


class TestWebhookSignature:
    def test_rejects_bad_signature(self, reviewer, tracker, sleep):
        client = TestClient(_app(reviewer, tracker, sleep, webhook_secret=SECRET))
        body = json.dumps(_payload()).encode()
        resp = client.post(
            "/webhook",
            content=body,
            headers={"Content-Type": "application/json", "X-Hub-Signature-256": _sign(body, secret="wrong")},
        )
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid signature"}
        reviewer.review_pull_request.assert_not_called()

    def test_rejects_missing_signature(self, reviewer, tracker, sleep):
        client = TestClient(_app(reviewer, tracker, sleep, webhook_secret=SECRET))
        assert client.post("/webhook", json=_payload()).status_code == 401

    def test_accepts_valid_signature(self, reviewer, tracker, sleep):
        client = TestClient(_app(reviewer, tracker, sleep, webhook_secret=SECRET))
        body = json.dumps(_payload()).encode()
        resp = client.post(
            "/webhook",
            content=body,
            headers={"Content-Type": "application/json", "X-Hub-Signature-256": _sign(body)},
        )
        assert resp.status_code == 200
        reviewer.review_pull_request.assert_called_once()


class TestStatusEndpoints:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"
        assert "timestamp" in resp.json()

    def test_status(self, client, tracker):
        tracker.mark_reviewed("acme/api", 1, "a")
        data = client.get("/status").json()
        assert data["status"] == "running"
        assert data["mode"] == "webhook"
        assert data["processed_prs"] == 1
        assert data["config"]["model"] == "gemini"
        assert data["config"]["webhook_secret_configured"] is False

    def test_lifespan_starts_and_stops(self, reviewer, tracker, sleep):
        with TestClient(_app(reviewer, tracker, sleep, sweep_interval=3600)) as client:
            assert client.get("/health").status_code == 200


class TestSweepTracker:
    def test_returns_removed_count(self, tracker):
        assert sweep_tracker(tracker) == 0

    def test_failure_is_logged_not_raised(self, caplog):
        broken = MagicMock()
        broken.sweep.side_effect = RuntimeError("dictionary changed size during iteration")
        assert sweep_tracker(broken) == 0
        assert "Tracker sweep failed" in caplog.text
