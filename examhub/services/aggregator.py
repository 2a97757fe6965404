"""
Attempt Aggregator.

The only code allowed to write ExamAttempt.score and ExamAttempt.max_score.
Every write is a database-side ``F('score') + delta`` update on a row held with
``select_for_update()``, so concurrent submissions and reviews on the same
attempt serialize on the row and never lose an increment.
"""
import logging

from django.db import transaction
from django.db.models import F, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from examhub.exceptions import InvariantViolation, NotFound
from examhub.models import ExamAttempt

logger = logging.getLogger(__name__)


class AttemptAggregator:

    def lock(self, attempt_id) -> ExamAttempt:
        """Load an attempt and hold its row lock until the surrounding transaction ends."""
        try:
            return (
                ExamAttempt.objects.select_for_update(of=('self',))
                .select_related('exam', 'user')
                .get(pk=attempt_id)
            )
        except ExamAttempt.DoesNotExist:
            raise NotFound("Attempt not found.")

    @transaction.atomic
    def record_answer(self, attempt: ExamAttempt, question, result) -> ExamAttempt:
        """Add a graded answer's score to the running total. max_score is left alone."""
        self._apply_delta(attempt, result.score)
        logger.debug(f"Attempt {attempt.pk}: +{result.score} for question {question.pk} -> {attempt.score}")
        return attempt

    @transaction.atomic
    def recompute_on_review(self, attempt: ExamAttempt, answer, new_score: int) -> ExamAttempt:
        """Apply the difference between a reviewed answer's old and new score."""
        old_score = answer.score or 0
        delta = new_score - old_score
        self._apply_delta(attempt, delta)
        logger.info(f"Attempt {attempt.pk}: review of answer {answer.pk} changed score by {delta} -> {attempt.score}")
        return attempt

    @transaction.atomic
    def finalize(self, attempt: ExamAttempt) -> ExamAttempt:
        """
        Close the attempt and fix max_score once as the exam's total points.

        Unanswered questions contribute nothing to score but still count in
        max_score. Later edits to the exam's questions do not move max_score.
        """
        max_score = attempt.exam.get_total_points()
        ExamAttempt.objects.filter(pk=attempt.pk).update(
            status=ExamAttempt.Status.COMPLETED,
            end_time=timezone.now(),
            max_score=max_score,
            score=Coalesce(F('score'), Value(0)),
        )
        self._refresh(attempt)
        self.check_bounds(attempt)
        logger.info(f"Attempt {attempt.pk} completed: {attempt.score}/{attempt.max_score}")
        return attempt

    def check_bounds(self, attempt: ExamAttempt) -> None:
        score = attempt.score or 0
        if score < 0 or (attempt.max_score is not None and score > attempt.max_score):
            logger.error(
                f"Score invariant violated on attempt {attempt.pk}: "
                f"score={attempt.score} max_score={attempt.max_score}"
            )
            raise InvariantViolation(
                f"Attempt {attempt.pk} would end with score {attempt.score} "
                f"outside 0..{attempt.max_score if attempt.max_score is not None else 'n/a'}."
            )

    def _apply_delta(self, attempt, delta):
        ExamAttempt.objects.filter(pk=attempt.pk).update(
            score=Coalesce(F('score'), Value(0)) + delta
        )
        self._refresh(attempt)
        self.check_bounds(attempt)

    @staticmethod
    def _refresh(attempt):
        attempt.refresh_from_db(fields=['score', 'max_score', 'status', 'end_time'])
