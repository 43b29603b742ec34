"""
Chapter Q&A prompt.
Only the most recent turns of the conversation are included.
"""

import json
from collections.abc import Sequence

from repo_tutor.agents.prompts.common import BasePrompt, base_system_prompt, format_repo_context_for_prompt
from repo_tutor.agents.pydantic_models import Chapter, Message
from repo_tutor.services.repo_models import RepoContext

QA_PROMPT_VERSION = 1
QA_CONTEXT_CHARS = 25_000
QA_HISTORY_TURNS = 8

QA_TASK = "Answer a user question grounded in the provided repo context."

QA_PROMPT = """Answer the user's question using ONLY the repo context + chapter content below.
If the answer is not present, say what is missing and suggest how to find it in the repo.
Return JSON with fields: answer (string), citations (array of file paths you used, optional).

Chapter JSON:
{chapter}

Conversation history (most recent last):
{history}

User question:
{question}

{repo_context}"""


def build_qa_prompt(
    repo_context: RepoContext,
    chapter: Chapter,
    history: Sequence[Message],
    question: str,
) -> BasePrompt:
    recent = [message.model_dump(mode="json", by_alias=True) for message in list(history)[-QA_HISTORY_TURNS:]]
    return BasePrompt(
        system=base_system_prompt(QA_TASK, QA_PROMPT_VERSION),
        prompt=QA_PROMPT.format(
            chapter=chapter.model_dump_json(by_alias=True, exclude_none=True),
            history=json.dumps(recent, ensure_ascii=False),
            question=question,
            repo_context=format_repo_context_for_prompt(repo_context, max_total_chars=QA_CONTEXT_CHARS),
        ),
    )
