"""
Quiz grading prompt.
The attempt JSON carries both the questions (with rubrics) and the learner's answers.
"""

from repo_tutor.agents.prompts.common import BasePrompt, base_system_prompt, format_repo_context_for_prompt
from repo_tutor.agents.pydantic_models import SCHEMA_VERSION, Chapter, QuizAttempt
from repo_tutor.services.repo_models import RepoContext

QUIZ_GRADING_PROMPT_VERSION = 1
GRADING_CONTEXT_CHARS = 25_000

QUIZ_GRADING_TASK = "Grade a user's quiz answers with a rubric and provide feedback."

QUIZ_GRADING_PROMPT = """You are grading a deep open-ended quiz attempt.
Requirements:
- Use the question.rubric if present; otherwise infer an appropriate rubric from the prompt.
- Score each answer in [0, 1] and provide specific feedback.
- Return one graded response for EVERY question id in the attempt.
- Compute overall score as the average of per-question scores.
- Provide overall feedback that highlights strengths and next improvements.

Output JSON ONLY in the required schema.
schemaVersion MUST be {schema_version}.

Chapter JSON:
{chapter}

QuizAttempt JSON (questions + user's answers in responses):
{attempt}

{repo_context}"""


def build_quiz_grading_prompt(repo_context: RepoContext, chapter: Chapter, attempt: QuizAttempt) -> BasePrompt:
    return BasePrompt(
        system=base_system_prompt(QUIZ_GRADING_TASK, QUIZ_GRADING_PROMPT_VERSION),
        prompt=QUIZ_GRADING_PROMPT.format(
            schema_version=SCHEMA_VERSION,
            chapter=chapter.model_dump_json(by_alias=True, exclude_none=True),
            attempt=attempt.model_dump_json(by_alias=True, exclude_none=True),
            repo_context=format_repo_context_for_prompt(repo_context, max_total_chars=GRADING_CONTEXT_CHARS),
        ),
    )
