"""
Review State Machine for essay answers.

The persisted ``review_requested``/``reviewed`` flags are read into one of
three states and every change goes through ``transition``:

    Unreviewed --RequestReview--> ReviewRequested --CompleteReview--> Reviewed

``Reviewed`` is terminal. Completing a review is the only path that changes an
essay answer's score, and it always recomputes the attempt total.
"""
import logging
from dataclasses import dataclass
from typing import Union

from django.db import transaction
from django.utils import timezone

from examhub.exceptions import ReviewNotAllowed
from examhub.grading import DeferredEssayRule
from examhub.models import UserAnswer
from .aggregator import AttemptAggregator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Unreviewed:
    pass


@dataclass(frozen=True)
class ReviewRequested:
    pass


@dataclass(frozen=True)
class Reviewed:
    accepted: bool
    comment: str = ''


ReviewState = Union[Unreviewed, ReviewRequested, Reviewed]


@dataclass(frozen=True)
class RequestReview:
    pass


@dataclass(frozen=True)
class CompleteReview:
    accepted: bool
    comment: str = ''


ReviewEvent = Union[RequestReview, CompleteReview]


def state_of(answer: UserAnswer) -> ReviewState:
    if answer.reviewed:
        return Reviewed(accepted=bool(answer.is_correct), comment=answer.review_comment or '')
    if answer.review_requested:
        return ReviewRequested()
    return Unreviewed()


def transition(state: ReviewState, event: ReviewEvent, answer: UserAnswer) -> ReviewState:
    """Return the next state or raise ReviewNotAllowed naming the failed precondition."""
    if isinstance(state, Reviewed):
        raise ReviewNotAllowed("This answer has already been reviewed.", code=ReviewNotAllowed.ALREADY_REVIEWED)

    if isinstance(event, RequestReview):
        if isinstance(state, ReviewRequested):
            raise ReviewNotAllowed("A review has already been requested for this answer.",
                                   code=ReviewNotAllowed.ALREADY_REQUESTED)
        if not answer.question.is_essay:
            raise ReviewNotAllowed("Only essay answers can be reviewed.", code=ReviewNotAllowed.NOT_ESSAY)
        if not answer.attempt.exam.allow_review:
            raise ReviewNotAllowed("This exam does not allow review.", code=ReviewNotAllowed.REVIEW_DISABLED)
        if not answer.attempt.is_completed:
            raise ReviewNotAllowed("The attempt must be completed before requesting a review.",
                                   code=ReviewNotAllowed.ATTEMPT_NOT_COMPLETED)
        return ReviewRequested()

    if isinstance(event, CompleteReview):
        if not isinstance(state, ReviewRequested):
            raise ReviewNotAllowed("No review has been requested for this answer.",
                                   code=ReviewNotAllowed.NOT_REQUESTED)
        return Reviewed(accepted=event.accepted, comment=event.comment)

    raise TypeError(f"Unknown review event: {event!r}")


class ReviewWorkflow:
    """Applies review transitions to stored answers."""

    def __init__(self, aggregator: AttemptAggregator = None):
        self.aggregator = aggregator or AttemptAggregator()

    @transaction.atomic
    def request(self, answer: UserAnswer) -> UserAnswer:
        transition(state_of(answer), RequestReview(), answer)
        answer.review_requested = True
        answer.save(update_fields=['review_requested'])
        logger.info(f"Review requested for answer {answer.pk} (attempt {answer.attempt_id})")
        return answer

    @transaction.atomic
    def complete(self, answer: UserAnswer, accepted: bool, comment: str = '', reviewer=None) -> UserAnswer:
        new_state = transition(state_of(answer), CompleteReview(accepted=accepted, comment=comment or ''), answer)
        new_score = DeferredEssayRule.review_score(answer.question, new_state.accepted)

        self.aggregator.recompute_on_review(answer.attempt, answer, new_score)

        answer.reviewed = True
        answer.is_correct = new_state.accepted
        answer.score = new_score
        answer.review_comment = new_state.comment
        answer.reviewed_at = timezone.now()
        answer.reviewed_by = reviewer
        answer.save(update_fields=[
            'reviewed', 'is_correct', 'score', 'review_comment', 'reviewed_at', 'reviewed_by'
        ])
        logger.info(f"Answer {answer.pk} reviewed: accepted={accepted} score={new_score}")
        return answer
