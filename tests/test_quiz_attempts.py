"""
Tests for quiz attempt helpers
"""

from datetime import UTC, datetime, timedelta

from repo_tutor.agents.fallbacks import fallback_grade, fallback_quiz
from repo_tutor.agents.pydantic_models import QuizResponse
from repo_tutor.services.quiz_attempts import (
    all_questions_answered,
    apply_grading,
    build_responses_from_answers,
    create_quiz_attempt,
    get_latest_quiz_attempt,
)


class TestQuizAttempts:
    """Test cases for quiz attempt helpers"""

    def test_create_attempt(self):
        attempt = create_quiz_attempt("chapter-1", fallback_quiz())

        assert attempt.id.startswith("quiz-")
        assert attempt.status == "in_progress"
        assert attempt.responses == []
        assert attempt.created_at == attempt.updated_at
        assert create_quiz_attempt("chapter-1", fallback_quiz()).id != attempt.id

    def test_build_responses(self):
        questions = fallback_quiz()
        existing = [QuizResponse(question_id="q2", answer="old answer"), QuizResponse(question_id="q3", answer="keep")]

        responses = build_responses_from_answers(questions, {"q1": "  new  ", "q2": "   "}, existing)

        # q2 was explicitly blanked, q3 comes from the existing responses
        assert [(r.question_id, r.answer) for r in responses] == [("q1", "new"), ("q3", "keep")]

    def test_all_questions_answered(self):
        questions = fallback_quiz()
        assert all_questions_answered(questions, {"q1": "a", "q2": "b", "q3": "c"})
        assert not all_questions_answered(questions, {"q1": "a", "q2": "b", "q3": "  "})
        assert not all_questions_answered(questions, {"q1": "a"})

    def test_latest_attempt(self):
        first = create_quiz_attempt("chapter-1", fallback_quiz())
        later = first.model_copy(update={"id": "quiz-later", "updated_at": first.created_at + timedelta(minutes=5)})
        other_chapter = create_quiz_attempt("chapter-2", fallback_quiz())

        assert get_latest_quiz_attempt([first, later, other_chapter], "chapter-1").id == "quiz-later"
        assert get_latest_quiz_attempt([other_chapter], "chapter-1") is None
        assert get_latest_quiz_attempt(None, "chapter-1") is None

    def test_apply_grading_returns_completed_copy(self):
        attempt = create_quiz_attempt("chapter-1", fallback_quiz())
        attempt = attempt.model_copy(update={"created_at": datetime(2024, 1, 1, tzinfo=UTC)})
        grading = fallback_grade(attempt)

        graded = apply_grading(attempt, grading)

        assert graded.status == "completed"
        assert graded.score == grading.score
        assert [r.score for r in graded.responses] == [0.3, 0.3, 0.3]
        assert attempt.status == "in_progress"
        assert attempt.responses == []
