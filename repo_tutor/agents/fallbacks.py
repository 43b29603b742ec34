"""
Deterministic offline substitutes used when structured generation fails.

Every function here is pure: the same input always produces the same output,
with no network access and no clock reads.
"""

from dataclasses import dataclass

from repo_tutor.agents.pydantic_models import (
    Chapter,
    ChapterPlan,
    GradedQuizResponse,
    QaAnswer,
    QuizAttempt,
    QuizGrading,
    QuizQuestion,
    Task,
)
from repo_tutor.utils.github_utils import slugify

DEFAULT_OBJECTIVE = "Complete the chapter tasks"
EMPTY_ANSWER = "(empty)"

FALLBACK_CHAPTER_CONTENT = (
    "Chapter generation failed, so this placeholder content is shown instead.\n\n"
    "Suggested next steps:\n"
    "1) Read the README and the docs first.\n"
    "2) Find the entry files (main/index).\n"
    "3) Run the project and note the key commands and their output.\n"
)

FALLBACK_GRADING_FEEDBACK = (
    "The scoring service is currently unavailable, so this is a rough heuristic score based on "
    "answer length (it does not reflect real understanding). Try grading again later."
)

FALLBACK_ANSWER_TEXT = (
    "I can't answer this reliably from the current context. "
    "Try searching the repository for the related symbols or files, then ask again."
)


@dataclass(frozen=True)
class GradingHeuristicPolicy:
    """Length thresholds (in characters of the trimmed answer) and the scores they earn."""

    detailed_min_chars: int = 200
    partial_min_chars: int = 80
    detailed_score: float = 0.7
    partial_score: float = 0.5
    short_score: float = 0.3
    detailed_feedback: str = (
        "Fairly complete answer. Add concrete file/function names and the key flow details."
    )
    partial_feedback: str = (
        "Some useful information. Back it up with key evidence (paths/modules) and a clearer chain of reasoning."
    )
    short_feedback: str = (
        "The answer is short. Structure it as conclusion, then evidence (files/modules), then steps or an example."
    )

    def grade(self, answer: str) -> tuple[float, str]:
        length = len(answer)
        if length >= self.detailed_min_chars:
            return self.detailed_score, self.detailed_feedback
        if length >= self.partial_min_chars:
            return self.partial_score, self.partial_feedback
        return self.short_score, self.short_feedback


DEFAULT_GRADING_POLICY = GradingHeuristicPolicy()


def fallback_plan(repo_name: str) -> list[ChapterPlan]:
    """Three generic chapters: orientation, architecture, a small hands-on change."""
    base_id = slugify(repo_name)
    return [
        ChapterPlan(
            id="chapter-1",
            title=f"Getting started with {repo_name}",
            summary="Understand the repository structure and run it locally.",
            objectives=["Identify entry points", "Run the project", "Map key directories"],
            reading_items=[],
            tasks=[
                Task(id=f"{base_id}-run", title="Run the project locally"),
                Task(id=f"{base_id}-map", title="Sketch the folder structure and main entry points"),
            ],
        ),
        ChapterPlan(
            id="chapter-2",
            title="Core architecture",
            summary="Trace the main request/data flow and key modules.",
            objectives=["Understand core modules", "Follow one end-to-end flow"],
            reading_items=[],
            tasks=[Task(id=f"{base_id}-flow", title="Trace one end-to-end flow in code")],
        ),
        ChapterPlan(
            id="chapter-3",
            title="Build something small",
            summary="Make a small change and validate with tests or manual run.",
            objectives=["Make a safe edit", "Verify behavior", "Learn debugging workflow"],
            reading_items=[],
            tasks=[Task(id=f"{base_id}-change", title="Implement a tiny feature or fix a bug")],
        ),
    ]


def fallback_chapter(plan: ChapterPlan) -> Chapter:
    return Chapter(
        id=plan.id,
        title=plan.title,
        summary=plan.summary,
        content=FALLBACK_CHAPTER_CONTENT,
        objectives=list(plan.objectives) or [DEFAULT_OBJECTIVE],
        reading_items=list(plan.reading_items),
        tasks=list(plan.tasks),
    )


def fallback_quiz() -> list[QuizQuestion]:
    return [
        QuizQuestion(
            id="q1",
            prompt="Explain the main entry point(s) and how execution flows from there.",
            rubric="Mention files/modules and the sequence of calls.",
        ),
        QuizQuestion(
            id="q2",
            prompt="Pick one key module and describe its responsibilities and boundaries.",
            rubric="Include inputs/outputs and why it exists.",
        ),
        QuizQuestion(
            id="q3",
            prompt="Describe how you would debug a failing behavior in this repo step-by-step.",
            rubric="Include reproduction, logging, and isolation strategy.",
        ),
    ]


def fallback_grade(attempt: QuizAttempt, policy: GradingHeuristicPolicy = DEFAULT_GRADING_POLICY) -> QuizGrading:
    """
    Grade every question of the attempt by answer length.

    Questions without a response are graded as "(empty)" with the lowest
    score, so the result always covers every question id of the attempt.
    """
    answers = {response.question_id: response.answer for response in attempt.responses}

    responses = []
    for question in attempt.questions:
        answer = answers.get(question.id, "").strip()
        score, feedback = policy.grade(answer)
        responses.append(
            GradedQuizResponse(
                question_id=question.id,
                answer=answer or EMPTY_ANSWER,
                score=score,
                feedback=feedback,
            )
        )

    average = sum(r.score for r in responses) / max(1, len(responses))
    return QuizGrading(
        responses=responses,
        score=max(0.0, min(1.0, average)),
        feedback=FALLBACK_GRADING_FEEDBACK,
    )


def fallback_answer() -> QaAnswer:
    return QaAnswer(answer=FALLBACK_ANSWER_TEXT, citations=[])
