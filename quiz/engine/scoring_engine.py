"""Quiz Scoring Engine - Scores a submission against the stored answer key."""

from __future__ import annotations

from typing import Any

from ..models.enums import Performance
from ..models.schemas import QuestionResult, SubmissionResult
from ..responses import utc_now_iso


class QuizScoringEngine:
    """Motor de pontuação para quizzes.

    Each question is worth one point; a question is correct when the chosen
    index equals the stored ``correctAnswer``. Skipped (null) answers count
    as incorrect.

    Faixas de desempenho (percentage rounded half up):
        - >= 80: excellent
        - >= 60: good
        - >= 40: average
        - < 40: needs_improvement

    Example:
        >>> engine = QuizScoringEngine()
        >>> engine.classify_performance(67)
        <Performance.GOOD: 'good'>
    """

    # (threshold, performance), highest first
    PERFORMANCE_THRESHOLDS = [
        (80, Performance.EXCELLENT),
        (60, Performance.GOOD),
        (40, Performance.AVERAGE),
        (0, Performance.NEEDS_IMPROVEMENT),
    ]

    SUGGESTION_THRESHOLD = 60
    LOW_SCORE_SUGGESTIONS = [
        "Review the topics you found challenging",
        "Try generating another quiz to practice more",
    ]
    HIGH_SCORE_SUGGESTIONS = ["Great job! Keep practicing to maintain your performance."]

    @staticmethod
    def round_percentage(correct: int, total: int) -> int:
        """``round(correct / total * 100)`` with halves rounded up."""
        if total <= 0:
            return 0
        return (correct * 200 + total) // (2 * total)

    def classify_performance(self, percentage: float) -> Performance:
        for threshold, performance in self.PERFORMANCE_THRESHOLDS:
            if percentage >= threshold:
                return performance
        return Performance.NEEDS_IMPROVEMENT

    def suggestions_for(self, percentage: float) -> list[str]:
        if percentage < self.SUGGESTION_THRESHOLD:
            return list(self.LOW_SCORE_SUGGESTIONS)
        return list(self.HIGH_SCORE_SUGGESTIONS)

    def calculate_results(
        self,
        quiz: dict[str, Any],
        answers: list[int | None],
        time_taken: float | None = None,
    ) -> SubmissionResult:
        """Calcula o resultado completo de uma submissão.

        Args:
            quiz: Stored quiz (camelCase dict, with answer key)
            answers: Chosen option index per question, None when skipped
            time_taken: Client reported duration in seconds

        Returns:
            SubmissionResult ready to persist

        Raises:
            ValueError: Number of answers differs from number of questions
        """
        questions = quiz["questions"]
        if len(questions) != len(answers):
            raise ValueError(
                f"Expected {len(questions)} answers, received {len(answers)}"
            )

        question_results = []
        correct_count = 0
        for question, answer in zip(questions, answers):
            is_correct = answer is not None and answer == question["correctAnswer"]
            if is_correct:
                correct_count += 1
            question_results.append(
                QuestionResult(
                    question_id=question["id"],
                    user_answer=answer,
                    correct_answer=question["correctAnswer"],
                    is_correct=is_correct,
                    question=question["question"],
                    options=question["options"],
                    explanation=question.get("explanation"),
                    topic=question.get("topic"),
                    difficulty=question.get("difficulty"),
                )
            )

        total = len(questions)
        percentage = self.round_percentage(correct_count, total)
        return SubmissionResult(
            quiz_id=quiz["id"],
            submitted_at=utc_now_iso(),
            total_questions=total,
            correct_answers=correct_count,
            incorrect_answers=total - correct_count,
            score=correct_count,
            percentage=percentage,
            time_taken=time_taken,
            performance=self.classify_performance(percentage),
            question_results=question_results,
        )
