"""
Tests for utility functions and settings
"""

import pytest

from repo_tutor.config import Settings
from repo_tutor.utils.github_utils import slugify, split_github_url


class TestGitHubUtils:
    """Test cases for github_utils"""

    def test_split_github_url(self):
        assert split_github_url("https://github.com/vercel/next.js") == ("vercel", "next.js")
        assert split_github_url("github.com/facebook/react.git") == ("facebook", "react")
        assert split_github_url("git@github.com:microsoft/vscode.git") == ("microsoft", "vscode")

    @pytest.mark.parametrize(
        "url,message",
        [
            ("", "Repo URL is empty"),
            ("https://bitbucket.org/a/b", "Only github.com URLs are supported"),
            ("https://github.com/only-owner", "Repo URL must include owner/repo"),
        ],
    )
    def test_split_github_url_errors(self, url, message):
        with pytest.raises(ValueError, match=message):
            split_github_url(url)

    @pytest.mark.parametrize(
        "value,expected",
        [("My-Repo!!", "my-repo"), ("next.js", "next-js"), ("!!!", "repo"), ("", "repo")],
    )
    def test_slugify(self, value, expected):
        assert slugify(value) == expected


class TestSettings:
    """Test cases for Settings validators"""

    def test_normalizes_log_level_and_urls(self):
        settings = Settings(
            _env_file=None,
            log_level=" debug ",
            github_api_url="https://ghe.example.com/api/v3/",
            llm_base_url="https://llm.example.com/v1/",
        )
        assert settings.log_level == "DEBUG"
        assert settings.github_api_url == "https://ghe.example.com/api/v3"
        assert settings.llm_base_url == "https://llm.example.com/v1"

    def test_ingest_defaults(self, monkeypatch):
        for name in ("INGEST_MAX_FILES", "INGEST_MAX_BYTES", "INGEST_MAX_FILE_BYTES", "INGEST_MAX_DEPTH"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)
        assert (settings.ingest_max_files, settings.ingest_max_bytes) == (28, 240_000)
        assert (settings.ingest_max_file_bytes, settings.ingest_max_depth) == (60_000, 4)
