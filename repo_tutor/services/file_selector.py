"""
Pick a bounded, representative subset of files from a repository tree.

Pure function of (tree, options): no I/O, and the ordering of the result
never depends on the order of the input listing.
"""

import logging
import re
from collections.abc import Iterable

from repo_tutor.services.repo_models import (
    FileSelection,
    GitHubError,
    GitHubErrorCode,
    IngestOptions,
    RepoFileCategory,
    ScoredFile,
    TreeEntry,
)
from repo_tutor.utils.results import Err, Ok, Result

logger = logging.getLogger(__name__)

# -----------------------------
# Configuration
# -----------------------------

SKIP_SEGMENTS = {
    "node_modules", "dist", "build", "coverage", ".git", ".next", ".nuxt",
    ".turbo", ".cache", "vendor", "target", "out", "__pycache__",
    ".venv", "venv", ".idea", ".vscode",
}

BINARY_EXTENSIONS = {
    "png", "jpg", "jpeg", "gif", "webp", "bmp", "ico", "pdf",
    "zip", "gz", "tgz", "tar", "7z", "rar", "jar",
    "mp4", "mov", "mp3", "wav", "woff", "woff2", "ttf", "otf", "eot",
    "exe", "dll", "so", "dylib", "bin", "dmg", "pyc", "class",
}

CONFIG_FILES = {
    "package.json", "pnpm-lock.yaml", "package-lock.json", "yarn.lock",
    "tsconfig.json", "vite.config.ts", "vite.config.js",
    "next.config.js", "next.config.mjs", "next.config.ts",
    "cargo.toml", "go.mod", "pyproject.toml", "requirements.txt", "setup.cfg",
    "gemfile", "composer.json", "pom.xml", "build.gradle",
}

DOCS_PREFIXES = ("docs/", "doc/", "documentation/")

ENTRYPOINT_PATTERN = re.compile(r"^(src|app|lib)/(main|index)\.(jsx?|tsx?|py|go|rs|rb)$", re.IGNORECASE)

BYTES_CAPPED_WARNING = "File selection capped by total bytes limit."

SCORE_README = 100
SCORE_DOCS = 85
SCORE_CONFIG = 70
SCORE_ENTRYPOINT = 60
SCORE_MARKDOWN = 45
SCORE_OTHER = 20


# -----------------------------
# Helpers
# -----------------------------

def path_depth(path: str) -> int:
    return len(path.split("/"))


def should_skip_path(path: str, max_depth: int) -> bool:
    segments = path.split("/")
    if len(segments) > max_depth:
        return True
    return any(segment in SKIP_SEGMENTS for segment in segments)


def is_likely_text(path: str) -> bool:
    filename = path.rsplit("/", 1)[-1]
    if "." not in filename:
        return True
    extension = filename.rsplit(".", 1)[-1].lower()
    return extension not in BINARY_EXTENSIONS


def score_path(path: str) -> tuple[int, RepoFileCategory]:
    lower = path.lower()
    if "/" not in path and lower.startswith("readme"):
        return SCORE_README, "readme"
    if lower.startswith(DOCS_PREFIXES):
        return SCORE_DOCS, "docs"
    filename = lower.rsplit("/", 1)[-1]
    if filename in CONFIG_FILES:
        return SCORE_CONFIG, "config"
    if ENTRYPOINT_PATTERN.match(lower):
        return SCORE_ENTRYPOINT, "entrypoint"
    if lower.endswith(".md"):
        return SCORE_MARKDOWN, "docs"
    return SCORE_OTHER, "other"


def _selection_order(item: ScoredFile) -> tuple[int, int, str, int]:
    return -item.score, item.depth, item.path, item.size


# -----------------------------
# Main API
# -----------------------------

def select_repo_files(
    tree: Iterable[TreeEntry],
    options: IngestOptions,
) -> Result[FileSelection, GitHubError]:
    """
    Score every eligible blob and greedily fill the file/byte budget.

    Eligibility: depth <= max_depth, no skipped segment, size <= max_file_bytes,
    not a binary extension. Candidates are ordered by score (desc), depth (asc),
    path (asc). A candidate that would overflow max_bytes is skipped, never
    swapped for a smaller one.

    Returns:
        Ok(FileSelection) or Err(REPO_TOO_LARGE) when nothing fits
    """
    candidates = [entry for entry in tree if entry.kind == "blob" and entry.path]

    scored: list[ScoredFile] = []
    skipped_count = 0

    for entry in candidates:
        size = entry.size or 0
        if (
            should_skip_path(entry.path, options.max_depth)
            or size > options.max_file_bytes
            or not is_likely_text(entry.path)
        ):
            skipped_count += 1
            continue
        score, category = score_path(entry.path)
        scored.append(ScoredFile(path=entry.path, size=size, score=score, category=category))

    scored.sort(key=_selection_order)

    selected: list[ScoredFile] = []
    warnings: list[str] = []
    total_bytes = 0

    for item in scored:
        if len(selected) >= options.max_files:
            break
        if total_bytes + item.size > options.max_bytes:
            if BYTES_CAPPED_WARNING not in warnings:
                warnings.append(BYTES_CAPPED_WARNING)
            continue
        selected.append(item)
        total_bytes += item.size

    logger.debug(
        f"📊 Selection: {len(selected)}/{len(candidates)} files, {total_bytes} bytes "
        f"(skipped {skipped_count}, limits: files={options.max_files}, bytes={options.max_bytes})"
    )

    if not selected:
        return Err(GitHubError(GitHubErrorCode.REPO_TOO_LARGE, "No eligible files found within size limits"))

    return Ok(
        FileSelection(
            selected=tuple(selected),
            total_tree_files=len(candidates),
            skipped_count=skipped_count,
            warnings=tuple(warnings),
        )
    )
