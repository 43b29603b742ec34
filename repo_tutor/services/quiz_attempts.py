"""
Quiz attempt bookkeeping. Attempts are immutable pydantic models; every
helper returns a new object instead of editing the one it was given.
"""

import logging
import uuid
from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, datetime

from repo_tutor.agents.pydantic_models import (
    QuizAttempt,
    QuizGrading,
    QuizQuestion,
    QuizResponse,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(UTC)


def create_quiz_attempt(chapter_id: str, questions: Sequence[QuizQuestion]) -> QuizAttempt:
    created_at = _now()
    return QuizAttempt(
        id=f"quiz-{uuid.uuid4()}",
        chapter_id=chapter_id,
        status="in_progress",
        questions=list(questions),
        responses=[],
        created_at=created_at,
        updated_at=created_at,
    )


def build_responses_from_answers(
    questions: Sequence[QuizQuestion],
    answers_by_question_id: Mapping[str, str],
    existing: Iterable[QuizResponse] | None = None,
) -> list[QuizResponse]:
    """
    Build responses in question order.

    New answers take precedence over existing responses; blank answers are
    dropped.
    """
    previous = {response.question_id: response.answer for response in existing or ()}

    responses = []
    for question in questions:
        raw = answers_by_question_id.get(question.id)
        if raw is None:
            raw = previous.get(question.id, "")
        answer = raw.strip()
        if answer:
            responses.append(QuizResponse(question_id=question.id, answer=answer))
    return responses


def all_questions_answered(questions: Sequence[QuizQuestion], answers_by_question_id: Mapping[str, str]) -> bool:
    return all(answers_by_question_id.get(question.id, "").strip() for question in questions)


def get_latest_quiz_attempt(attempts: Iterable[QuizAttempt] | None, chapter_id: str) -> QuizAttempt | None:
    candidates = [attempt for attempt in attempts or () if attempt.chapter_id == chapter_id]
    if not candidates:
        return None
    return max(candidates, key=lambda attempt: attempt.updated_at or attempt.created_at)


def apply_grading(attempt: QuizAttempt, grading: QuizGrading) -> QuizAttempt:
    """Return a completed copy of the attempt carrying the per-question scores and feedback."""
    responses = [
        QuizResponse(
            question_id=graded.question_id,
            answer=graded.answer,
            score=graded.score,
            feedback=graded.feedback,
        )
        for graded in grading.responses
    ]
    logger.debug(f"📝 Applying grading to attempt {attempt.id}: score={grading.score:.2f}")
    return attempt.model_copy(
        update={
            "status": "completed",
            "responses": responses,
            "score": grading.score,
            "feedback": grading.feedback,
            "updated_at": _now(),
        }
    )
