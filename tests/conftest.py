"""
Pytest configuration and shared fixtures
"""

from datetime import UTC, datetime

import pytest

from repo_tutor.services.llm_types import (
    ErrorCode,
    TransportFailure,
    TransportRequest,
    TransportSuccess,
)
from repo_tutor.services.repo_models import (
    RepoContext,
    RepoFile,
    RepoMetadata,
    RepoStats,
)


class FakeLlmClient:
    """Scripted LlmClient: returns the queued responses in order and records every request."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[TransportRequest] = []
        self.cancellations = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def generate(self, request, cancellation=None):
        self.requests.append(request)
        self.cancellations.append(cancellation)
        if not self.responses:
            raise AssertionError("FakeLlmClient ran out of scripted responses")
        response = self.responses.pop(0)
        if isinstance(response, str):
            return TransportSuccess(output_text=response, model="fake-model")
        return response


@pytest.fixture(autouse=True)
def reset_singletons(monkeypatch):
    """Reset the LLM client singleton and make sure no real API key is used"""
    import repo_tutor.services.llm_client

    monkeypatch.setattr(repo_tutor.services.llm_client, "_llm_client_instance", None)
    monkeypatch.setattr(repo_tutor.services.llm_client.settings, "llm_api_key", None)


@pytest.fixture
def fake_llm():
    """Factory: fake_llm('{"ok": true}', TransportFailure(...), ...)"""
    return FakeLlmClient


@pytest.fixture
def llm_failure():
    def _failure(code: ErrorCode, message: str = "failed") -> TransportFailure:
        return TransportFailure(code=code, message=message)

    return _failure


@pytest.fixture
def make_repo_context():
    """Factory for RepoContext objects; files are (path, content, category) tuples"""

    def _make(files=None, warnings=(), description="A demo repository"):
        files = files if files is not None else [
            ("README.md", "# Demo\n\nRun `make dev`.", "readme"),
            ("src/main.py", "print('hello')\n", "entrypoint"),
            ("pyproject.toml", "[project]\nname = 'demo'\n", "config"),
        ]
        repo_files = tuple(
            RepoFile(
                path=path,
                size=len(content.encode("utf-8")),
                content=content,
                source_url=f"https://raw.githubusercontent.com/octo/demo/main/{path}",
                category=category,
            )
            for path, content, category in files
        )
        return RepoContext(
            repo=RepoMetadata(
                owner="octo",
                repo="demo",
                url="https://github.com/octo/demo",
                default_branch="main",
                description=description,
                fetched_at=datetime(2024, 1, 1, tzinfo=UTC),
            ),
            files=repo_files,
            selected_paths=tuple(f.path for f in repo_files),
            stats=RepoStats(
                total_tree_files=len(repo_files) + 2,
                selected_files=len(repo_files),
                total_bytes=sum(f.size for f in repo_files),
                skipped_files=2,
            ),
            warnings=tuple(warnings),
        )

    return _make
