import logging
import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError

from repo_tutor.config import settings
from repo_tutor.services.file_selector import select_repo_files
from repo_tutor.services.repo_models import (
    FileSelection,
    GitHubError,
    GitHubErrorCode,
    IngestOptions,
    RepoContext,
    RepoFile,
    RepoMetadata,
    RepoRef,
    RepoStats,
    TreeEntry,
)
from repo_tutor.utils.cancellation import (
    CancellationToken,
    OperationCancelled,
    OperationTimedOut,
    race_with_deadline,
)
from repo_tutor.utils.github_utils import split_github_url
from repo_tutor.utils.results import Err, Ok, Result

logger = logging.getLogger(__name__)

# -----------------------------
# Configuration
# -----------------------------

RATE_LIMIT_MESSAGE = re.compile(r"rate limit", re.IGNORECASE)

TREE_ADAPTER = TypeAdapter(list[TreeEntry])


# -----------------------------
# Helpers
# -----------------------------

def parse_github_repo_url(github_url: str) -> Result[RepoRef, GitHubError]:
    """
    Parse any accepted GitHub repo reference into a canonical RepoRef.

    Accepts https URLs, scheme-less `github.com/owner/repo`, `.git` suffixes
    and `git@github.com:owner/repo.git`.
    """
    try:
        owner, repo = split_github_url(github_url)
    except ValueError as e:
        return Err(GitHubError(GitHubErrorCode.INVALID_REPO_URL, str(e)))
    return Ok(RepoRef(owner=owner, repo=repo, url=f"https://github.com/{owner}/{repo}"))


def classify_github_status(
    status_code: int,
    headers: Mapping[str, str],
    message: str = "",
) -> GitHubError:
    """
    Map a non-2xx GitHub response to an error code.

    404 -> NOT_FOUND; 429, or 403 with an exhausted quota or a rate-limit
    message -> RATE_LIMITED; anything else -> FETCH_FAILED.
    """
    if status_code == 404:
        return GitHubError(GitHubErrorCode.NOT_FOUND, "Repository or file not found (404)")
    if status_code == 429 or (
        status_code == 403
        and (headers.get("x-ratelimit-remaining") == "0" or bool(RATE_LIMIT_MESSAGE.search(message)))
    ):
        return GitHubError(GitHubErrorCode.RATE_LIMITED, "GitHub rate limit exceeded")
    return GitHubError(GitHubErrorCode.FETCH_FAILED, f"GitHub request failed ({status_code})")


def encode_path(path: str) -> str:
    return "/".join(quote(segment, safe="") for segment in path.split("/"))


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.reason_phrase or "Request failed"
    if isinstance(data, dict) and isinstance(data.get("message"), str):
        return data["message"]
    return response.reason_phrase or "Request failed"


# -----------------------------
# GitHub client
# -----------------------------

class GitHubService:
    """Read-only access to repository metadata, tree listings and raw file content."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        access_token: str | None = None,
        api_url: str | None = None,
        raw_url: str | None = None,
    ):
        self.client = client
        self.access_token = access_token if access_token is not None else settings.github_access_token
        self.api_url = (api_url or settings.github_api_url).rstrip("/")
        self.raw_url = (raw_url or settings.github_raw_url).rstrip("/")

    def _headers(self, accept: str | None = "application/vnd.github+json") -> dict[str, str]:
        headers = {}
        if accept:
            headers["Accept"] = accept
        if self.access_token:
            headers["Authorization"] = f"token {self.access_token}"
        return headers

    async def _get_json(
        self,
        url: str,
        options: IngestOptions,
        cancellation: CancellationToken | None,
    ) -> Result[Any, GitHubError]:
        try:
            response = await race_with_deadline(
                self.client.get(url, headers=self._headers()),
                timeout=options.timeout_seconds,
                cancellation=cancellation,
            )
        except OperationCancelled:
            return Err(GitHubError(GitHubErrorCode.CANCELLED, "GitHub request cancelled"))
        except OperationTimedOut:
            return Err(GitHubError(GitHubErrorCode.TIMEOUT, "GitHub request timed out"))
        except httpx.HTTPError as e:
            logger.warning(f"⚠️  GitHub request failed for {url}: {e}")
            return Err(GitHubError(GitHubErrorCode.FETCH_FAILED, "Network request failed"))

        if response.is_error:
            return Err(classify_github_status(response.status_code, response.headers, _error_message(response)))

        try:
            return Ok(response.json())
        except ValueError:
            return Err(GitHubError(GitHubErrorCode.FETCH_FAILED, "GitHub returned invalid JSON"))

    async def fetch_repo_info(
        self,
        repo: RepoRef,
        options: IngestOptions,
        cancellation: CancellationToken | None = None,
    ) -> Result[tuple[str, str | None], GitHubError]:
        """Return (default_branch, description); non-public repos are rejected here."""
        result = await self._get_json(f"{self.api_url}/repos/{repo.owner}/{repo.repo}", options, cancellation)
        if not result.ok:
            return result

        data = result.value if isinstance(result.value, dict) else {}
        visibility = data.get("visibility")
        if data.get("private") or (visibility is not None and visibility != "public"):
            return Err(GitHubError(GitHubErrorCode.NOT_PUBLIC, "Private repositories are not supported"))

        default_branch = data.get("default_branch")
        if not default_branch:
            return Err(GitHubError(GitHubErrorCode.FETCH_FAILED, "Missing default branch"))

        return Ok((default_branch, data.get("description") or None))

    async def fetch_repo_tree(
        self,
        repo: RepoRef,
        branch: str,
        options: IngestOptions,
        cancellation: CancellationToken | None = None,
    ) -> Result[list[TreeEntry], GitHubError]:
        url = f"{self.api_url}/repos/{repo.owner}/{repo.repo}/git/trees/{quote(branch, safe='')}?recursive=1"
        result = await self._get_json(url, options, cancellation)
        if not result.ok:
            return result

        data = result.value if isinstance(result.value, dict) else {}
        if data.get("truncated"):
            return Err(GitHubError(GitHubErrorCode.REPO_TOO_LARGE, "Repo tree is too large to ingest safely"))

        try:
            return Ok(TREE_ADAPTER.validate_python(data.get("tree") or []))
        except ValidationError as e:
            logger.error(f"❌ Malformed tree listing for {repo.owner}/{repo.repo}: {e}")
            return Err(GitHubError(GitHubErrorCode.FETCH_FAILED, "Malformed tree listing"))

    async def _read_capped(self, url: str, max_bytes: int) -> Result[str, GitHubError]:
        async with self.client.stream("GET", url, headers=self._headers(accept=None)) as response:
            if response.is_error:
                return Err(classify_github_status(response.status_code, response.headers))

            length = response.headers.get("content-length", "")
            if length.isdigit() and int(length) > max_bytes:
                return Err(GitHubError(GitHubErrorCode.REPO_TOO_LARGE, "File exceeds size limit"))

            body = bytearray()
            async for chunk in response.aiter_bytes():
                body.extend(chunk)
                if len(body) > max_bytes:
                    return Err(GitHubError(GitHubErrorCode.REPO_TOO_LARGE, "File exceeds size limit"))

        return Ok(body.decode("utf-8", errors="replace"))

    async def fetch_text(
        self,
        url: str,
        options: IngestOptions,
        cancellation: CancellationToken | None = None,
    ) -> Result[str, GitHubError]:
        try:
            return await race_with_deadline(
                self._read_capped(url, options.max_file_bytes),
                timeout=options.timeout_seconds,
                cancellation=cancellation,
            )
        except OperationCancelled:
            return Err(GitHubError(GitHubErrorCode.CANCELLED, "GitHub request cancelled"))
        except OperationTimedOut:
            return Err(GitHubError(GitHubErrorCode.TIMEOUT, "GitHub request timed out"))
        except httpx.HTTPError as e:
            logger.debug(f"   Content request failed for {url}: {e}")
            return Err(GitHubError(GitHubErrorCode.FETCH_FAILED, "Network request failed"))

    async def fetch_selected_files(
        self,
        repo: RepoRef,
        branch: str,
        selection: FileSelection,
        options: IngestOptions,
        cancellation: CancellationToken | None = None,
    ) -> Result[tuple[list[RepoFile], int], GitHubError]:
        """
        Fetch selected files one at a time; files that fail or exceed the cap are dropped.

        Returns:
            Ok((files, skipped_by_fetch)), Err(CANCELLED) if the token fired,
            or Err(REPO_TOO_LARGE) if nothing could be fetched
        """
        files: list[RepoFile] = []
        skipped_by_fetch = 0
        total_bytes = 0

        for item in selection.selected:
            raw_url = f"{self.raw_url}/{repo.owner}/{repo.repo}/{quote(branch, safe='')}/{encode_path(item.path)}"
            text = await self.fetch_text(raw_url, options, cancellation)
            if not text.ok:
                if text.error.code == GitHubErrorCode.CANCELLED:
                    return text
                skipped_by_fetch += 1
                logger.debug(f"⏭️  Dropping {item.path}: {text.error.code} ({text.error.message})")
                continue

            size = item.size or len(text.value.encode("utf-8"))
            # Sizeless tree entries are only measured once fetched
            if total_bytes + size > options.max_bytes:
                skipped_by_fetch += 1
                logger.debug(f"⏭️  Dropping {item.path}: {size} bytes would exceed max_bytes={options.max_bytes}")
                continue

            files.append(
                RepoFile(
                    path=item.path,
                    size=size,
                    content=text.value,
                    source_url=raw_url,
                    category=item.category,
                )
            )
            total_bytes += size

        if not files:
            return Err(GitHubError(GitHubErrorCode.REPO_TOO_LARGE, "Failed to fetch any files"))

        return Ok((files, skipped_by_fetch))

    async def ingest(
        self,
        repo: RepoRef,
        options: IngestOptions,
        cancellation: CancellationToken | None = None,
    ) -> Result[RepoContext, GitHubError]:
        logger.info(f"📂 Ingesting repository: {repo.owner}/{repo.repo}")
        if not self.access_token:
            logger.debug("   No GitHub access token configured, using unauthenticated requests")

        info = await self.fetch_repo_info(repo, options, cancellation)
        if not info.ok:
            return info
        default_branch, description = info.value
        logger.info(f"✅ Default branch: {default_branch}")

        tree = await self.fetch_repo_tree(repo, default_branch, options, cancellation)
        if not tree.ok:
            return tree
        logger.info(f"📋 Repository tree contains {len(tree.value)} items")

        selection = select_repo_files(tree.value, options)
        if not selection.ok:
            return selection
        logger.info(
            f"📥 Fetching {len(selection.value.selected)} files "
            f"(skipped {selection.value.skipped_count} of {selection.value.total_tree_files})"
        )

        fetched = await self.fetch_selected_files(repo, default_branch, selection.value, options, cancellation)
        if not fetched.ok:
            return fetched
        files, skipped_by_fetch = fetched.value

        stats = RepoStats(
            total_tree_files=selection.value.total_tree_files,
            selected_files=len(files),
            total_bytes=sum(f.size for f in files),
            skipped_files=selection.value.skipped_count + skipped_by_fetch,
        )
        logger.info(
            f"✅ Ingested {stats.selected_files} files ({stats.total_bytes / 1024:.1f} KB, "
            f"{skipped_by_fetch} dropped while fetching)"
        )

        return Ok(
            RepoContext(
                repo=RepoMetadata(
                    owner=repo.owner,
                    repo=repo.repo,
                    url=repo.url,
                    default_branch=default_branch,
                    description=description,
                    fetched_at=datetime.now(timezone.utc),
                ),
                files=tuple(files),
                selected_paths=tuple(f.path for f in files),
                stats=stats,
                warnings=selection.value.warnings,
            )
        )


# -----------------------------
# Main API
# -----------------------------

async def ingest_repo(
    repo_url: str | RepoRef,
    options: IngestOptions | None = None,
    *,
    cancellation: CancellationToken | None = None,
    client: httpx.AsyncClient | None = None,
) -> Result[RepoContext, GitHubError]:
    """
    Build a RepoContext for a public GitHub repository.

    Calls, in order: repository metadata, recursive tree listing, then one raw
    content request per selected file. Every request has its own timeout.

    Returns:
        Ok(RepoContext) or Err(GitHubError)
    """
    options = options or IngestOptions()

    if isinstance(repo_url, RepoRef):
        repo = repo_url
    else:
        parsed = parse_github_repo_url(repo_url)
        if not parsed.ok:
            logger.warning(f"⚠️  Invalid repository URL {repo_url!r}: {parsed.error.message}")
            return parsed
        repo = parsed.value

    if client is not None:
        result = await GitHubService(client).ingest(repo, options, cancellation)
    else:
        async with httpx.AsyncClient(follow_redirects=True) as owned_client:
            result = await GitHubService(owned_client).ingest(repo, options, cancellation)

    if not result.ok:
        logger.error(f"❌ Failed to ingest {repo.owner}/{repo.repo}: {result.error.code} ({result.error.message})")
    return result
