"""
Chapter content prompt.
Expands one ChapterPlan into a full Chapter.
"""

from repo_tutor.agents.prompts.common import BasePrompt, base_system_prompt, format_repo_context_for_prompt
from repo_tutor.agents.pydantic_models import SCHEMA_VERSION, ChapterPlan
from repo_tutor.services.repo_models import RepoContext

CHAPTER_PROMPT_VERSION = 1

CHAPTER_TASK = "Generate a single chapter content from a ChapterPlan."

CHAPTER_PROMPT = """Return a single Chapter JSON object that matches the schema.
Chapter.schemaVersion MUST be {schema_version}.
The chapter should be practical and specific to the repo.
content should be a well-structured plain text (no markdown fences).

ChapterPlan JSON:
{chapter_plan}

{repo_context}"""


def build_chapter_prompt(repo_context: RepoContext, chapter_plan: ChapterPlan) -> BasePrompt:
    return BasePrompt(
        system=base_system_prompt(CHAPTER_TASK, CHAPTER_PROMPT_VERSION),
        prompt=CHAPTER_PROMPT.format(
            schema_version=SCHEMA_VERSION,
            chapter_plan=chapter_plan.model_dump_json(by_alias=True, exclude_none=True),
            repo_context=format_repo_context_for_prompt(repo_context),
        ),
    )
