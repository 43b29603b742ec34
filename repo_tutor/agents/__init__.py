"""
Learning agents: structured generation engine, orchestrators and fallbacks.
"""

from repo_tutor.agents.orchestrators import (
    GradingFallback,
    GradingSuccess,
    answer_question,
    generate_chapter,
    generate_plan,
    generate_quiz_questions,
    grade_quiz_attempt,
)
from repo_tutor.agents.structured_generation import (
    GenerationCancelled,
    GenerationRequest,
    StructuredFailure,
    StructuredSuccess,
    generate_structured,
)

__all__ = [
    # Engine
    "GenerationRequest",
    "StructuredSuccess",
    "StructuredFailure",
    "GenerationCancelled",
    "generate_structured",
    # Orchestrators
    "generate_plan",
    "generate_chapter",
    "generate_quiz_questions",
    "answer_question",
    "grade_quiz_attempt",
    "GradingSuccess",
    "GradingFallback",
]
