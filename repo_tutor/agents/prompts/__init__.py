"""
Prompt builders for the learning orchestrators.

Each builder returns a BasePrompt (system + prompt). Repository content is
embedded as clearly fenced, untrusted data.
"""

from repo_tutor.agents.prompts.chapter import build_chapter_prompt
from repo_tutor.agents.prompts.common import (
    BasePrompt,
    base_system_prompt,
    format_repo_context_for_prompt,
)
from repo_tutor.agents.prompts.grading import build_quiz_grading_prompt
from repo_tutor.agents.prompts.plan import build_plan_prompt
from repo_tutor.agents.prompts.qa import build_qa_prompt
from repo_tutor.agents.prompts.quiz import build_quiz_prompt

__all__ = [
    "BasePrompt",
    "base_system_prompt",
    "format_repo_context_for_prompt",
    "build_plan_prompt",
    "build_chapter_prompt",
    "build_quiz_prompt",
    "build_quiz_grading_prompt",
    "build_qa_prompt",
]
