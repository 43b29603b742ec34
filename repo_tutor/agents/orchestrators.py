"""
Learning orchestrators: plan, chapter, quiz, grading and Q&A.

Each orchestrator:
1. Builds its prompt from the RepoContext
2. Runs structured generation against the matching schema
3. Returns validated data, or the deterministic fallback on failure

Cancellation is never replaced by a fallback: it is raised as
GenerationCancelled so the caller can stop the surrounding flow.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Literal

from repo_tutor.agents.fallbacks import (
    DEFAULT_GRADING_POLICY,
    GradingHeuristicPolicy,
    fallback_answer,
    fallback_chapter,
    fallback_grade,
    fallback_plan,
    fallback_quiz,
)
from repo_tutor.agents.prompts import (
    BasePrompt,
    build_chapter_prompt,
    build_plan_prompt,
    build_qa_prompt,
    build_quiz_grading_prompt,
    build_quiz_prompt,
)
from repo_tutor.agents.pydantic_models import (
    Chapter,
    ChapterPlan,
    ChapterPlanList,
    Message,
    QaAnswer,
    QuizAttempt,
    QuizGrading,
    QuizQuestion,
    QuizQuestionSet,
)
from repo_tutor.agents.structured_generation import (
    GenerationCancelled,
    GenerationRequest,
    StructuredResult,
    generate_structured,
)
from repo_tutor.config import settings
from repo_tutor.services.llm_client import get_llm_client
from repo_tutor.services.llm_types import ErrorCode, LlmClient
from repo_tutor.services.repo_models import RepoContext
from repo_tutor.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GradingSuccess:
    grading: QuizGrading
    ok: Literal[True] = True


@dataclass(frozen=True)
class GradingFallback:
    code: ErrorCode
    reason: str
    fallback: QuizGrading
    ok: Literal[False] = False


GradingOutcome = GradingSuccess | GradingFallback


async def _run_structured(
    operation: str,
    prompt: BasePrompt,
    schema: Any,
    *,
    client: LlmClient | None,
    max_attempts: int | None,
    cancellation: CancellationToken | None,
) -> StructuredResult:
    request = GenerationRequest(
        schema=schema,
        system=prompt.system,
        prompt=prompt.prompt,
        max_attempts=max_attempts if max_attempts is not None else settings.llm_max_attempts,
        cancellation=cancellation,
    )
    result = await generate_structured(request, client or get_llm_client())

    if not result.ok:
        if result.cancelled:
            raise GenerationCancelled(f"{operation} cancelled")
        logger.warning(
            f"⚠️  {operation} failed after {result.attempts} attempt(s) ({result.code}): {result.reason}. "
            "Using fallback."
        )
    return result


async def generate_plan(
    repo_context: RepoContext,
    *,
    client: LlmClient | None = None,
    max_attempts: int | None = None,
    cancellation: CancellationToken | None = None,
) -> list[ChapterPlan]:
    logger.info(f"📚 Generating learning plan for {repo_context.repo.owner}/{repo_context.repo.repo}...")

    result = await _run_structured(
        "Plan generation",
        build_plan_prompt(repo_context),
        ChapterPlanList,
        client=client,
        max_attempts=max_attempts,
        cancellation=cancellation,
    )
    if result.ok:
        logger.info(f"✅ Generated {len(result.data)} chapter plans")
        return result.data
    return fallback_plan(repo_context.repo.repo)


async def generate_chapter(
    repo_context: RepoContext,
    chapter_plan: ChapterPlan,
    *,
    client: LlmClient | None = None,
    max_attempts: int | None = None,
    cancellation: CancellationToken | None = None,
) -> Chapter:
    logger.info(f"📝 Generating chapter {chapter_plan.id}: {chapter_plan.title}")

    result = await _run_structured(
        "Chapter generation",
        build_chapter_prompt(repo_context, chapter_plan),
        Chapter,
        client=client,
        max_attempts=max_attempts,
        cancellation=cancellation,
    )
    return result.data if result.ok else fallback_chapter(chapter_plan)


async def generate_quiz_questions(
    repo_context: RepoContext,
    chapter: Chapter,
    *,
    client: LlmClient | None = None,
    max_attempts: int | None = None,
    cancellation: CancellationToken | None = None,
) -> list[QuizQuestion]:
    result = await _run_structured(
        "Quiz generation",
        build_quiz_prompt(repo_context, chapter),
        QuizQuestionSet,
        client=client,
        max_attempts=max_attempts,
        cancellation=cancellation,
    )
    return list(result.data.questions) if result.ok else fallback_quiz()


async def answer_question(
    repo_context: RepoContext,
    chapter: Chapter,
    history: Sequence[Message],
    question: str,
    *,
    client: LlmClient | None = None,
    max_attempts: int | None = None,
    cancellation: CancellationToken | None = None,
) -> QaAnswer:
    result = await _run_structured(
        "Question answering",
        build_qa_prompt(repo_context, chapter, history, question),
        QaAnswer,
        client=client,
        max_attempts=max_attempts,
        cancellation=cancellation,
    )
    return result.data if result.ok else fallback_answer()


def missing_graded_questions(attempt: QuizAttempt, grading: QuizGrading) -> list[str]:
    graded = {response.question_id for response in grading.responses}
    return [question.id for question in attempt.questions if question.id not in graded]


async def grade_quiz_attempt(
    repo_context: RepoContext,
    chapter: Chapter,
    attempt: QuizAttempt,
    *,
    client: LlmClient | None = None,
    max_attempts: int | None = None,
    cancellation: CancellationToken | None = None,
    policy: GradingHeuristicPolicy = DEFAULT_GRADING_POLICY,
) -> GradingOutcome:
    """
    Grade a quiz attempt.

    A schema-valid grading that skips any question of the attempt is treated
    as a failure (INCOMPLETE_GRADING) and replaced by the heuristic grade.

    Returns:
        GradingSuccess with the model's grading, or GradingFallback with the
        failure reason and a heuristic grading covering every question

    Raises:
        GenerationCancelled: If the cancellation token fired
    """
    logger.info(f"🧮 Grading quiz attempt {attempt.id} ({len(attempt.questions)} questions)")

    result = await _run_structured(
        "Quiz grading",
        build_quiz_grading_prompt(repo_context, chapter, attempt),
        QuizGrading,
        client=client,
        max_attempts=max_attempts,
        cancellation=cancellation,
    )

    if not result.ok:
        return GradingFallback(result.code, result.reason, fallback_grade(attempt, policy))

    missing = missing_graded_questions(attempt, result.data)
    if missing:
        reason = f"Missing graded responses for: {', '.join(missing)}"
        logger.warning(f"⚠️  Incomplete grading for attempt {attempt.id}: {reason}. Using fallback.")
        return GradingFallback(ErrorCode.INCOMPLETE_GRADING, reason, fallback_grade(attempt, policy))

    logger.info(f"✅ Quiz attempt {attempt.id} graded: {result.data.score:.2f}")
    return GradingSuccess(result.data)
