import re
from urllib.parse import urlparse

SSH_URL_PATTERN = re.compile(r"^git@github\.com:([^/]+)/(.+?)(?:\.git)?$", re.IGNORECASE)
SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)
GITHUB_HOSTS = {"github.com", "www.github.com"}


def split_github_url(github_url: str) -> tuple[str, str]:
    """
    Split a GitHub repository reference into (owner, repo).

    Examples:
    - https://github.com/vercel/next.js -> ("vercel", "next.js")
    - github.com/facebook/react.git -> ("facebook", "react")
    - git@github.com:microsoft/vscode.git -> ("microsoft", "vscode")
    - https://github.com/owner/repo/tree/main/docs -> ("owner", "repo")

    Raises:
        ValueError: If the input is not a github.com repository reference
    """
    trimmed = (github_url or "").strip()
    if not trimmed:
        raise ValueError("Repo URL is empty")

    ssh_match = SSH_URL_PATTERN.match(trimmed)
    if ssh_match:
        return ssh_match.group(1), ssh_match.group(2)

    normalized = trimmed if SCHEME_PATTERN.match(trimmed) else f"https://{trimmed}"
    parsed = urlparse(normalized)

    if (parsed.hostname or "").lower() not in GITHUB_HOSTS:
        raise ValueError("Only github.com URLs are supported")

    parts = [part for part in parsed.path.split("/") if part]
    if len(parts) < 2:
        raise ValueError("Repo URL must include owner/repo")

    owner = parts[0]
    repo = re.sub(r"\.git$", "", parts[1], flags=re.IGNORECASE)
    if not owner or not repo:
        raise ValueError("Invalid owner or repo")

    return owner, repo


def slugify(value: str, default: str = "repo") -> str:
    """
    Lowercase slug with runs of non-alphanumerics collapsed to '-'.

    Examples:
    - "My-Repo!!" -> "my-repo"
    - "next.js" -> "next-js"
    - "!!!" -> "repo"
    """
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug or default
