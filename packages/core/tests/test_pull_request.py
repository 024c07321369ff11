"""Tests for the PyGithub-backed RepositoryClient."""

from unittest.mock import MagicMock

from github import GithubException

from diffsentry_core.gh.pull_request import RepositoryClient
from diffsentry_core.models import ExistingComment

SHA = "a" * 40


def _gh_pr(number=1, draft=False, state="open", title="Fix bug"):
    pr = MagicMock()
    pr.number = number
    pr.draft = draft
    pr.state = state
    pr.title = title
    pr.head.sha = SHA
    return pr


def _client(pr=None):
    gh = MagicMock()
    repo = gh.get_repo.return_value
    if pr is not None:
        repo.get_pull.return_value = pr
    return RepositoryClient(gh), gh, repo


def _review(review_id, body):
    r = MagicMock()
    r.id = review_id
    r.body = body
    return r


def _comment(path, line, original_line=None):
    c = MagicMock()
    c.path = path
    c.line = line
    c.original_line = original_line
    return c


class TestGetPullRequest:
    def test_maps_fields(self):
        client, gh, repo = _client(_gh_pr(number=5, draft=True, title=None))
        info = client.get_pull_request("acme", "api", 5)
        gh.get_repo.assert_called_once_with("acme/api")
        repo.get_pull.assert_called_once_with(5)
        assert info.number == 5
        assert info.draft is True
        assert info.head_sha == SHA
        assert info.title == ""


class TestListOpenPullRequests:
    def test_most_recently_updated_first(self):
        client, _, repo = _client()
        repo.get_pulls.return_value = [_gh_pr(number=n) for n in (3, 2, 1)]
        result = client.list_open_pull_requests("acme", "api")
        repo.get_pulls.assert_called_once_with(state="open", sort="updated", direction="desc")
        assert [p.number for p in result] == [3, 2, 1]

    def test_limit(self):
        client, _, repo = _client()
        repo.get_pulls.return_value = [_gh_pr(number=n) for n in range(10)]
        assert len(client.list_open_pull_requests("acme", "api", limit=4)) == 4


class TestListChangedFiles:
    def test_maps_files(self):
        pr = _gh_pr()
        f = MagicMock()
        f.filename = "src/app.ts"
        f.status = "modified"
        f.additions = 3
        f.deletions = 1
        f.changes = 4
        f.patch = "@@ -1 +1 @@"
        binary = MagicMock()
        binary.filename = "logo.png"
        binary.status = "added"
        binary.additions = 0
        binary.deletions = 0
        binary.changes = 0
        binary.patch = None
        pr.get_files.return_value = [f, binary]
        client, _, _ = _client(pr)

        files = client.list_changed_files("acme", "api", 1)

        assert files[0].path == "src/app.ts"
        assert files[0].changes == 4
        assert files[0].patch == "@@ -1 +1 @@"
        assert files[1].patch is None


class TestListExistingAttributedComments:
    def test_only_attributed_reviews(self):
        pr = _gh_pr()
        pr.get_reviews.return_value = [
            _review(1, "LGTM!"),
            _review(2, "🤖 **AI CODE REVIEW SUMMARY** 🤖\n\n..."),
        ]
        pr.get_single_review_comments.return_value = [_comment("a.ts", 10)]
        client, _, _ = _client(pr)

        existing = client.list_existing_attributed_comments("acme", "api", 1)

        pr.get_single_review_comments.assert_called_once_with(2)
        assert existing == [ExistingComment(path="a.ts", line=10)]

    def test_falls_back_to_original_line(self):
        pr = _gh_pr()
        pr.get_reviews.return_value = [_review(2, "AI CODE REVIEW")]
        pr.get_single_review_comments.return_value = [_comment("a.ts", None, original_line=7), _comment("b.ts", None)]
        client, _, _ = _client(pr)
        assert client.list_existing_attributed_comments("acme", "api", 1) == [ExistingComment(path="a.ts", line=7)]

    def test_review_without_body(self):
        pr = _gh_pr()
        pr.get_reviews.return_value = [_review(1, None)]
        client, _, _ = _client(pr)
        assert client.list_existing_attributed_comments("acme", "api", 1) == []

    def test_github_error_returns_empty(self):
        pr = _gh_pr()
        pr.get_reviews.side_effect = GithubException(500, {"message": "boom"}, None)
        client, _, _ = _client(pr)
        assert client.list_existing_attributed_comments("acme", "api", 1) == []


class TestPostReview:
    def test_posts_comment_event_on_right_side(self):
        pr = _gh_pr()
        client, _, _ = _client(pr)
        client.post_review("acme", "api", 1, "summary", [{"path": "a.ts", "line": 3, "body": "b"}])
        pr.create_review.assert_called_once_with(
            body="summary",
            event="COMMENT",
            comments=[{"path": "a.ts", "line": 3, "side": "RIGHT", "body": "b"}],
        )
