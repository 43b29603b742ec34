"""
Diagnostic script: ingest a public GitHub repository and generate its learning plan.

Usage:
    python scripts/generate_learning_plan.py https://github.com/owner/repo [--max-files 20]
"""

import argparse
import asyncio
import json
import logging
import sys

from repo_tutor.agents.orchestrators import generate_plan
from repo_tutor.config import settings
from repo_tutor.services.github_service import ingest_repo
from repo_tutor.services.repo_models import IngestOptions

logging.basicConfig(level=settings.log_level, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a learning plan for a public GitHub repository.")
    parser.add_argument("repo_url", help="GitHub repository URL, e.g. https://github.com/owner/repo")
    parser.add_argument("--max-files", type=int, default=settings.ingest_max_files)
    parser.add_argument("--max-bytes", type=int, default=settings.ingest_max_bytes)
    parser.add_argument("--max-attempts", type=int, default=settings.llm_max_attempts)
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    print("=" * 70)
    print(f"🔍 Ingesting {args.repo_url}")
    print("=" * 70)

    options = IngestOptions(max_files=args.max_files, max_bytes=args.max_bytes)
    ingested = await ingest_repo(args.repo_url, options)
    if not ingested.ok:
        print(f"❌ {ingested.error.code}: {ingested.error.message}")
        return 1

    context = ingested.value
    print(f"   Branch: {context.repo.default_branch}")
    print(
        f"   Files: {context.stats.selected_files}/{context.stats.total_tree_files} "
        f"({context.stats.total_bytes} bytes, {context.stats.skipped_files} skipped)"
    )
    for warning in context.warnings:
        print(f"   ⚠️  {warning}")
    print()

    if not settings.llm_api_key:
        print("⚠️  LLM_API_KEY is not set; the plan below is the offline fallback")

    plans = await generate_plan(context, max_attempts=args.max_attempts)
    print(json.dumps([plan.model_dump(mode="json", by_alias=True) for plan in plans], indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(run(parse_args())))
