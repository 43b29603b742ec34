"""
Types shared by repository ingestion: the tree listing coming from GitHub,
the selection derived from it, and the immutable RepoContext handed to the
prompt builders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from repo_tutor.config import settings

RepoFileCategory = Literal["readme", "docs", "config", "entrypoint", "other"]


class GitHubErrorCode(StrEnum):
    INVALID_REPO_URL = "INVALID_REPO_URL"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    REPO_TOO_LARGE = "REPO_TOO_LARGE"
    NOT_PUBLIC = "NOT_PUBLIC"
    FETCH_FAILED = "FETCH_FAILED"
    TIMEOUT = "TIMEOUT"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class GitHubError:
    code: GitHubErrorCode
    message: str


@dataclass(frozen=True)
class IngestOptions:
    max_files: int = field(default_factory=lambda: settings.ingest_max_files)
    max_bytes: int = field(default_factory=lambda: settings.ingest_max_bytes)
    max_file_bytes: int = field(default_factory=lambda: settings.ingest_max_file_bytes)
    max_depth: int = field(default_factory=lambda: settings.ingest_max_depth)
    timeout_ms: int = field(default_factory=lambda: settings.ingest_timeout_ms)

    def __post_init__(self) -> None:
        for name in ("max_files", "max_bytes", "max_file_bytes", "max_depth", "timeout_ms"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class RepoRef(FrozenModel):
    owner: str
    repo: str
    url: str


class TreeEntry(BaseModel):
    """One item of a recursive git tree listing."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    path: str = ""
    kind: str = Field(alias="type")  # blob | tree | commit (submodule)
    size: int | None = None
    sha: str | None = None


@dataclass(frozen=True)
class ScoredFile:
    path: str
    size: int
    score: int
    category: RepoFileCategory

    @property
    def depth(self) -> int:
        return len(self.path.split("/"))


@dataclass(frozen=True)
class FileSelection:
    selected: tuple[ScoredFile, ...]
    total_tree_files: int
    skipped_count: int
    warnings: tuple[str, ...] = ()


class RepoFile(FrozenModel):
    path: str
    size: int
    content: str
    source_url: str
    category: RepoFileCategory


class RepoMetadata(RepoRef):
    default_branch: str
    description: str | None = None
    fetched_at: datetime


class RepoStats(FrozenModel):
    total_tree_files: int
    selected_files: int
    total_bytes: int
    skipped_files: int


class RepoContext(FrozenModel):
    repo: RepoMetadata
    files: tuple[RepoFile, ...]
    selected_paths: tuple[str, ...]
    stats: RepoStats
    warnings: tuple[str, ...] = ()
