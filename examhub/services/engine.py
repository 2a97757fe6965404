"""
Grading engine: the operations the HTTP layer calls.

Each operation runs in a single transaction. Attempt-scoped operations take
the attempt's row lock first, then authorize, then validate/grade/transition,
so a denied or invalid request never writes anything.
"""
import logging
from dataclasses import dataclass, asdict
from typing import Any, Mapping

from django.db import IntegrityError, transaction

from examhub.access import Action, ensure
from examhub.exceptions import (
    AttemptClosed, DuplicateAnswer, ExamNotOpen, Forbidden, NotFound,
    QuestionInUse, QuestionMismatch, ReviewNotAllowed, ValidationError,
)
from examhub.grading import grade, validate
from examhub.models import Exam, ExamAttempt, Question, UserAnswer
from .aggregator import AttemptAggregator
from .review import ReviewWorkflow

logger = logging.getLogger(__name__)

ANSWER_UPDATE_FIELDS = frozenset({'review_requested', 'reviewed', 'is_correct', 'score', 'review_comment'})
SCORING_QUESTION_FIELDS = frozenset({'points', 'question_type', 'options', 'correct_answer'})


@dataclass(frozen=True)
class PublicExamInfo:
    id: int
    title: str
    description: str
    subject: str
    grade: str
    duration: int

    def to_dict(self):
        return asdict(self)


class GradingEngine:
    def __init__(self, aggregator: AttemptAggregator = None, reviews: ReviewWorkflow = None):
        self.aggregator = aggregator or AttemptAggregator()
        self.reviews = reviews or ReviewWorkflow(self.aggregator)

    # =========================================================================
    # ATTEMPTS
    # =========================================================================

    @transaction.atomic
    def start_attempt(self, exam_id, actor) -> ExamAttempt:
        if not getattr(actor, 'is_authenticated', False):
            raise Forbidden("Authentication required.")
        exam = self._get_exam(exam_id, lock=True)
        if not exam.is_open:
            raise ExamNotOpen(f"Exam is {exam.status}; new attempts cannot be started.")
        attempt = ExamAttempt.objects.create(exam=exam, user=actor)
        logger.info(f"User {actor.pk} started attempt {attempt.pk} on exam {exam.pk}")
        return attempt

    def get_attempt(self, attempt_id, actor) -> ExamAttempt:
        try:
            attempt = ExamAttempt.objects.select_related('exam', 'user').get(pk=attempt_id)
        except ExamAttempt.DoesNotExist:
            raise NotFound("Attempt not found.")
        ensure(actor, Action.ATTEMPT_READ, attempt)
        return attempt

    @transaction.atomic
    def complete_attempt(self, attempt_id, actor) -> ExamAttempt:
        attempt = self.aggregator.lock(attempt_id)
        ensure(actor, Action.ATTEMPT_UPDATE, attempt)
        if attempt.is_completed:
            raise AttemptClosed()
        return self.aggregator.finalize(attempt)

    # =========================================================================
    # ANSWERS
    # =========================================================================

    @transaction.atomic
    def submit_answer(self, attempt_id, question_id, raw_answer: Any, actor) -> UserAnswer:
        attempt = self.aggregator.lock(attempt_id)
        ensure(actor, Action.ANSWER_SUBMIT, attempt)
        if attempt.is_completed:
            raise AttemptClosed("Answers cannot be added to a completed attempt.")

        try:
            question = Question.objects.get(pk=question_id)
        except Question.DoesNotExist:
            raise NotFound("Question not found.")
        if question.exam_id != attempt.exam_id:
            raise QuestionMismatch()
        if self._already_answered(attempt, question):
            raise DuplicateAnswer()

        valid_answer = validate(question, raw_answer)
        result = grade(question, valid_answer)

        try:
            with transaction.atomic():
                answer = UserAnswer.objects.create(
                    attempt=attempt,
                    question=question,
                    answer=valid_answer.value,
                    is_correct=result.is_correct,
                    score=result.score,
                )
        except IntegrityError:
            # Backends without row locks let a racing insert through the check above.
            raise DuplicateAnswer()
        self.aggregator.record_answer(attempt, question, result)
        answer.attempt = attempt

        logger.info(
            f"Answer {answer.pk} on attempt {attempt.pk}: question {question.pk} "
            f"{result.grading_method} score={result.score}"
        )
        return answer

    @transaction.atomic
    def request_review(self, answer_id, actor) -> UserAnswer:
        answer = self._get_locked_answer(answer_id)
        ensure(actor, Action.ANSWER_UPDATE, answer, fields=['review_requested'])
        return self.reviews.request(answer)

    @transaction.atomic
    def complete_review(self, answer_id, accepted: bool, comment: str, actor) -> UserAnswer:
        answer = self._get_locked_answer(answer_id)
        ensure(actor, Action.REVIEW_COMPLETE, answer)
        if not isinstance(accepted, bool):
            raise ValidationError("Review outcome must be true (accepted) or false (rejected).", code='invalid_outcome')
        return self.reviews.complete(answer, accepted, comment or '', reviewer=actor)

    @transaction.atomic
    def update_answer(self, answer_id, fields: Mapping[str, Any], actor) -> UserAnswer:
        """
        Field-level update entry point used by ``PUT /answers/<id>/``.

        Authorization runs on the set of fields first, so a student touching
        anything but ``review_requested`` is refused before any transition.
        The fields are then mapped onto a review transition.
        """
        unknown = set(fields) - ANSWER_UPDATE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}.", code='invalid_fields')
        if not fields:
            raise ValidationError("No fields to update.", code='no_changes')

        answer = self._get_locked_answer(answer_id)
        ensure(actor, Action.ANSWER_UPDATE, answer, fields=fields.keys())

        if 'score' in fields:
            raise ValidationError("Score is derived from the review outcome and cannot be set.", code='derived_field')

        if 'reviewed' in fields:
            if fields['reviewed'] is not True:
                raise ReviewNotAllowed("A completed review cannot be undone.", code=ReviewNotAllowed.INVALID_TRANSITION)
            return self.complete_review(answer_id, fields.get('is_correct'), fields.get('review_comment', ''), actor)

        if 'review_requested' in fields:
            if fields['review_requested'] is not True:
                raise ReviewNotAllowed("A review request cannot be withdrawn.", code=ReviewNotAllowed.INVALID_TRANSITION)
            return self.request_review(answer_id, actor)

        raise ValidationError("Correctness and comments are set by completing a review.", code='derived_field')

    # =========================================================================
    # QUESTIONS
    # =========================================================================

    @transaction.atomic
    def update_question(self, question_id, changes: Mapping[str, Any], actor) -> Question:
        """
        Apply validated field changes to a question.

        Points, type, options and the answer key are frozen while the exam has
        attempts in progress. Points and type of an essay also stay fixed while
        any of its answers may still be reviewed.
        """
        question = self._get_question_for_edit(question_id, actor)
        scoring_changes = {
            field for field, value in changes.items()
            if field in SCORING_QUESTION_FIELDS and getattr(question, field) != value
        }
        if scoring_changes:
            self._ensure_not_in_progress(question, scoring_changes)
            if scoring_changes & {'points', 'question_type'} and self._has_reviewable_answers(question):
                raise QuestionInUse(
                    "Answers to this essay may still be reviewed; its points and type cannot change."
                )

        for field, value in changes.items():
            setattr(question, field, value)
        question.save()
        logger.info(f"Question {question.pk} on exam {question.exam_id} updated: {', '.join(sorted(changes))}")
        return question

    @transaction.atomic
    def delete_question(self, question_id, actor) -> None:
        question = self._get_question_for_edit(question_id, actor)
        self._ensure_not_in_progress(question, None)
        logger.info(f"Question {question.pk} deleted from exam {question.exam_id}")
        question.delete()

    # =========================================================================
    # PUBLIC
    # =========================================================================

    def get_exam_by_access_code(self, code: str) -> PublicExamInfo:
        normalized_code = (code or '').strip().upper()
        try:
            exam = Exam.objects.get(access_code=normalized_code)
        except Exam.DoesNotExist:
            raise NotFound("Exam not found.")
        if not exam.is_open:
            raise Forbidden("Exam is not active.")
        return PublicExamInfo(
            id=exam.pk,
            title=exam.title,
            description=exam.description,
            subject=exam.subject,
            grade=exam.grade,
            duration=exam.duration,
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _get_exam(self, exam_id, lock=False) -> Exam:
        queryset = Exam.objects.select_for_update() if lock else Exam.objects
        try:
            return queryset.get(pk=exam_id)
        except Exam.DoesNotExist:
            raise NotFound("Exam not found.")

    def _get_question_for_edit(self, question_id, actor) -> Question:
        try:
            question = Question.objects.get(pk=question_id)
        except Question.DoesNotExist:
            raise NotFound("Question not found.")
        # Holding the exam row keeps new attempts out until the edit commits.
        question.exam = self._get_exam(question.exam_id, lock=True)
        ensure(actor, Action.EXAM_MUTATE, question.exam)
        return question

    def _ensure_not_in_progress(self, question, fields) -> None:
        in_progress = question.exam.attempts.filter(status=ExamAttempt.Status.IN_PROGRESS).count()
        if not in_progress:
            return
        if fields is None:
            detail = f"{in_progress} attempt(s) on this exam are in progress; the question cannot be deleted."
        else:
            detail = (
                f"{in_progress} attempt(s) on this exam are in progress; "
                f"cannot change: {', '.join(sorted(fields))}."
            )
        raise QuestionInUse(detail)

    def _has_reviewable_answers(self, question) -> bool:
        if not question.is_essay or not question.exam.allow_review:
            return False
        return question.user_answers.filter(reviewed=False).exists()

    def _already_answered(self, attempt, question) -> bool:
        return UserAnswer.objects.filter(attempt=attempt, question=question).exists()

    def _get_locked_answer(self, answer_id) -> UserAnswer:
        try:
            answer = UserAnswer.objects.select_related('question').get(pk=answer_id)
        except UserAnswer.DoesNotExist:
            raise NotFound("Answer not found.")
        answer.attempt = self.aggregator.lock(answer.attempt_id)
        # Re-read under the attempt lock so the review flags are current.
        answer.refresh_from_db(fields=['reviewed', 'review_requested', 'is_correct', 'score', 'review_comment'])
        return answer
