"""
Quiz question prompt.
"""

from repo_tutor.agents.prompts.common import BasePrompt, base_system_prompt, format_repo_context_for_prompt
from repo_tutor.agents.pydantic_models import SCHEMA_VERSION, Chapter
from repo_tutor.services.repo_models import RepoContext

QUIZ_PROMPT_VERSION = 1
QUIZ_CONTEXT_CHARS = 30_000

QUIZ_TASK = "Generate deep open-ended quiz questions for the chapter."

QUIZ_PROMPT = """Create 3 to 5 deep open-ended questions.
Each question should test understanding and ability to reason about this repo.
Return JSON in the required schema (schemaVersion MUST be {schema_version}).

Chapter JSON:
{chapter}

{repo_context}"""


def build_quiz_prompt(repo_context: RepoContext, chapter: Chapter) -> BasePrompt:
    return BasePrompt(
        system=base_system_prompt(QUIZ_TASK, QUIZ_PROMPT_VERSION),
        prompt=QUIZ_PROMPT.format(
            schema_version=SCHEMA_VERSION,
            chapter=chapter.model_dump_json(by_alias=True, exclude_none=True),
            repo_context=format_repo_context_for_prompt(repo_context, max_total_chars=QUIZ_CONTEXT_CHARS),
        ),
    )
