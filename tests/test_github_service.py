"""
Tests for GitHub ingestion
"""

import asyncio
import json

import httpx
import pytest

from repo_tutor.services.github_service import (
    GitHubService,
    classify_github_status,
    ingest_repo,
    parse_github_repo_url,
)
from repo_tutor.services.repo_models import GitHubErrorCode, IngestOptions, RepoRef
from repo_tutor.utils.cancellation import CancellationToken

REPO = RepoRef(owner="octo", repo="demo", url="https://github.com/octo/demo")

REPO_INFO = {"default_branch": "main", "private": False, "visibility": "public", "description": "Demo repo"}

TREE = {
    "truncated": False,
    "tree": [
        {"path": "README.md", "type": "blob", "size": 20, "sha": "a1"},
        {"path": "src", "type": "tree", "sha": "t1"},
        {"path": "src/main.py", "type": "blob", "size": 15, "sha": "a2"},
        {"path": "assets/logo.png", "type": "blob", "size": 300, "sha": "a3"},
        {"path": "vendor/lib", "type": "commit", "sha": "c1"},
    ],
}

CONTENTS = {
    "/octo/demo/main/README.md": b"# Demo\nRun it.\n",
    "/octo/demo/main/src/main.py": b"print('hi')\n",
}


def make_handler(repo_info=REPO_INFO, tree=TREE, contents=CONTENTS, calls=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request.url.path)
        if request.url.host == "api.github.com":
            if request.url.path == "/repos/octo/demo":
                return httpx.Response(200, json=repo_info)
            if request.url.path == "/repos/octo/demo/git/trees/main":
                return httpx.Response(200, json=tree)
            return httpx.Response(404, json={"message": "Not Found"})
        body = contents.get(request.url.path)
        if body is None:
            return httpx.Response(404, text="404: Not Found")
        return httpx.Response(200, content=body)

    return handler


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture(autouse=True)
def github_defaults(monkeypatch):
    from repo_tutor.services import github_service

    monkeypatch.setattr(github_service.settings, "github_access_token", None)
    monkeypatch.setattr(github_service.settings, "github_api_url", "https://api.github.com")
    monkeypatch.setattr(github_service.settings, "github_raw_url", "https://raw.githubusercontent.com")


class TestParseGitHubRepoUrl:
    """Test cases for parse_github_repo_url"""

    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/octo/demo",
            "https://github.com/octo/demo/",
            "https://github.com/octo/demo.git",
            "github.com/octo/demo",
            "http://www.github.com/octo/demo/tree/main/docs",
            "git@github.com:octo/demo.git",
            "  https://github.com/octo/demo  ",
        ],
    )
    def test_accepted_forms(self, url):
        result = parse_github_repo_url(url)
        assert result.ok
        assert result.value == REPO

    @pytest.mark.parametrize(
        "url",
        ["", "   ", "https://gitlab.com/octo/demo", "https://github.com/octo", "not a url at all"],
    )
    def test_rejected_forms(self, url):
        result = parse_github_repo_url(url)
        assert not result.ok
        assert result.error.code == GitHubErrorCode.INVALID_REPO_URL


class TestClassifyGitHubStatus:
    """Test cases for classify_github_status"""

    def test_not_found(self):
        assert classify_github_status(404, {}).code == GitHubErrorCode.NOT_FOUND

    def test_rate_limited(self):
        assert classify_github_status(429, {}).code == GitHubErrorCode.RATE_LIMITED
        assert classify_github_status(403, {"x-ratelimit-remaining": "0"}).code == GitHubErrorCode.RATE_LIMITED
        assert (
            classify_github_status(403, {}, "API rate limit exceeded for 1.2.3.4").code
            == GitHubErrorCode.RATE_LIMITED
        )

    def test_other_statuses_fail_fetch(self):
        assert classify_github_status(403, {"x-ratelimit-remaining": "12"}).code == GitHubErrorCode.FETCH_FAILED
        assert classify_github_status(500, {}).code == GitHubErrorCode.FETCH_FAILED
        assert "500" in classify_github_status(500, {}).message


class TestIngestRepo:
    """Test cases for ingest_repo"""

    @pytest.mark.asyncio
    async def test_ingest_success(self):
        async with mock_client(make_handler()) as client:
            result = await ingest_repo("https://github.com/octo/demo", IngestOptions(), client=client)

        assert result.ok
        context = result.value
        assert context.repo.default_branch == "main"
        assert context.repo.description == "Demo repo"
        assert context.selected_paths == ("README.md", "src/main.py")
        assert context.files[0].category == "readme"
        assert context.files[0].content == "# Demo\nRun it.\n"
        assert context.files[0].source_url == "https://raw.githubusercontent.com/octo/demo/main/README.md"
        assert context.stats.total_tree_files == 3
        assert context.stats.selected_files == 2
        assert context.stats.total_bytes == 35
        assert context.stats.skipped_files == 1

    @pytest.mark.asyncio
    async def test_invalid_url_makes_no_requests(self):
        calls = []
        async with mock_client(make_handler(calls=calls)) as client:
            result = await ingest_repo("https://example.com/x/y", client=client)

        assert result.error.code == GitHubErrorCode.INVALID_REPO_URL
        assert calls == []

    @pytest.mark.asyncio
    async def test_private_repo_rejected_before_tree_call(self):
        calls = []
        handler = make_handler(repo_info={**REPO_INFO, "private": True, "visibility": "private"}, calls=calls)
        async with mock_client(handler) as client:
            result = await ingest_repo(REPO, client=client)

        assert result.error.code == GitHubErrorCode.NOT_PUBLIC
        assert calls == ["/repos/octo/demo"]

    @pytest.mark.asyncio
    async def test_missing_default_branch(self):
        async with mock_client(make_handler(repo_info={"private": False})) as client:
            result = await ingest_repo(REPO, client=client)

        assert result.error.code == GitHubErrorCode.FETCH_FAILED

    @pytest.mark.asyncio
    async def test_truncated_tree_fails_closed(self):
        async with mock_client(make_handler(tree={**TREE, "truncated": True})) as client:
            result = await ingest_repo(REPO, client=client)

        assert result.error.code == GitHubErrorCode.REPO_TOO_LARGE

    @pytest.mark.asyncio
    async def test_repo_not_found(self):
        def handler(request):
            return httpx.Response(404, json={"message": "Not Found"})

        async with mock_client(handler) as client:
            result = await ingest_repo(REPO, client=client)

        assert result.error.code == GitHubErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_rate_limited_metadata(self):
        def handler(request):
            return httpx.Response(
                403,
                json={"message": "API rate limit exceeded"},
                headers={"x-ratelimit-remaining": "0"},
            )

        async with mock_client(handler) as client:
            result = await ingest_repo(REPO, client=client)

        assert result.error.code == GitHubErrorCode.RATE_LIMITED

    @pytest.mark.asyncio
    async def test_oversize_content_dropped_without_aborting(self):
        # Tree reports a small size, but the raw body is larger than max_file_bytes
        contents = {**CONTENTS, "/octo/demo/main/src/main.py": b"x" * 5_000}
        async with mock_client(make_handler(contents=contents)) as client:
            result = await ingest_repo(REPO, IngestOptions(max_file_bytes=1_000), client=client)

        assert result.ok
        assert result.value.selected_paths == ("README.md",)
        assert result.value.stats.skipped_files == 2

    @pytest.mark.asyncio
    async def test_sizeless_entries_respect_total_byte_limit(self):
        names = ["a", "b", "c", "d", "e"]
        tree = {
            "truncated": False,
            "tree": [{"path": f"docs/{name}.md", "type": "blob", "sha": name} for name in names],
        }
        contents = {f"/octo/demo/main/docs/{name}.md": b"x" * 900 for name in names}
        async with mock_client(make_handler(tree=tree, contents=contents)) as client:
            result = await ingest_repo(REPO, IngestOptions(max_bytes=1_000), client=client)

        assert result.ok
        assert result.value.selected_paths == ("docs/a.md",)
        assert result.value.stats.total_bytes == 900
        assert result.value.stats.skipped_files == 4

    @pytest.mark.asyncio
    async def test_failed_file_fetch_is_dropped(self):
        contents = {"/octo/demo/main/README.md": CONTENTS["/octo/demo/main/README.md"]}
        async with mock_client(make_handler(contents=contents)) as client:
            result = await ingest_repo(REPO, client=client)

        assert result.ok
        assert result.value.selected_paths == ("README.md",)

    @pytest.mark.asyncio
    async def test_no_fetchable_files(self):
        async with mock_client(make_handler(contents={})) as client:
            result = await ingest_repo(REPO, client=client)

        assert result.error.code == GitHubErrorCode.REPO_TOO_LARGE

    @pytest.mark.asyncio
    async def test_request_timeout(self):
        async def handler(request):
            await asyncio.sleep(1)
            return httpx.Response(200, json=REPO_INFO)

        async with mock_client(handler) as client:
            result = await ingest_repo(REPO, IngestOptions(timeout_ms=20), client=client)

        assert result.error.code == GitHubErrorCode.TIMEOUT

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self):
        token = CancellationToken()
        token.cancel()
        calls = []
        async with mock_client(make_handler(calls=calls)) as client:
            result = await ingest_repo(REPO, cancellation=token, client=client)

        assert result.error.code == GitHubErrorCode.CANCELLED
        assert calls == []

    @pytest.mark.asyncio
    async def test_cancelled_while_fetching_files(self):
        token = CancellationToken()

        def handler(request):
            if request.url.host == "raw.githubusercontent.com":
                token.cancel()
            return make_handler()(request)

        async with mock_client(handler) as client:
            result = await ingest_repo(REPO, cancellation=token, client=client)

        assert result.error.code == GitHubErrorCode.CANCELLED


class TestGitHubServiceHeaders:
    """Test cases for request headers"""

    @pytest.mark.asyncio
    async def test_token_sent_when_configured(self):
        seen = []

        def handler(request):
            seen.append(request.headers.get("authorization"))
            return httpx.Response(200, content=json.dumps(REPO_INFO).encode())

        async with mock_client(handler) as client:
            service = GitHubService(client, access_token="ghp_test")
            result = await service.fetch_repo_info(REPO, IngestOptions())

        assert result.ok
        assert seen == ["token ghp_test"]
