"""
Learning plan prompt.
Asks for the full list of chapter plans for a repository.
"""

from repo_tutor.agents.prompts.common import BasePrompt, base_system_prompt, format_repo_context_for_prompt
from repo_tutor.agents.pydantic_models import SCHEMA_VERSION
from repo_tutor.services.repo_models import RepoContext

PLAN_PROMPT_VERSION = 1

PLAN_TASK = "Generate a learning plan (chapters) for a public GitHub repo."

PLAN_PROMPT = """Return a JSON array of ChapterPlan objects.
Each ChapterPlan.schemaVersion MUST be {schema_version}.
The first chapter should focus on repo orientation + how to run it locally.
Prefer official docs URLs when you include readingItems.url (only if you are confident).

{repo_context}"""


def build_plan_prompt(repo_context: RepoContext) -> BasePrompt:
    return BasePrompt(
        system=base_system_prompt(PLAN_TASK, PLAN_PROMPT_VERSION),
        prompt=PLAN_PROMPT.format(
            schema_version=SCHEMA_VERSION,
            repo_context=format_repo_context_for_prompt(repo_context),
        ),
    )
