"""
Access control for exams, attempts and answers.

``authorize`` is a pure policy function: it looks only at ownership fields and
returns a Decision. ``ensure`` raises Forbidden for callers that want to stop.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from examhub.exceptions import Forbidden
from examhub.models import Exam, ExamAttempt, UserAnswer

logger = logging.getLogger(__name__)

OWNER_WRITABLE_ANSWER_FIELDS = frozenset({'review_requested'})


class Action(str, Enum):
    EXAM_MUTATE = 'exam.mutate'
    EXAM_PUBLIC_LOOKUP = 'exam.public_lookup'
    EXAM_RESULTS = 'exam.results'
    ATTEMPT_READ = 'attempt.read'
    ATTEMPT_UPDATE = 'attempt.update'
    ANSWER_SUBMIT = 'answer.submit'
    ANSWER_UPDATE = 'answer.update'
    REVIEW_COMPLETE = 'review.complete'


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ''

    def __bool__(self):
        return self.allowed


ALLOW = Decision(True)


def _actor_id(actor) -> Optional[int]:
    if actor is None or not getattr(actor, 'is_authenticated', False):
        return None
    return actor.pk


def _exam_of(resource) -> Exam:
    if isinstance(resource, Exam):
        return resource
    if isinstance(resource, ExamAttempt):
        return resource.exam
    if isinstance(resource, UserAnswer):
        return resource.attempt.exam
    raise TypeError(f"Unsupported resource: {type(resource).__name__}")


def _attempt_of(resource) -> ExamAttempt:
    if isinstance(resource, ExamAttempt):
        return resource
    if isinstance(resource, UserAnswer):
        return resource.attempt
    raise TypeError(f"{type(resource).__name__} is not an attempt resource")


def authorize(actor, action: Action, resource, fields: Optional[Iterable[str]] = None) -> Decision:
    """
    Decide whether ``actor`` may perform ``action`` on ``resource``.

    Exam owners (instructors) may mutate their exams, read and update every
    attempt on them, and set any answer field. Attempt owners may read and
    update their own attempt, submit answers to it, and only toggle
    ``review_requested`` on its answers. Public lookup is open to everyone,
    including anonymous actors.
    """
    if action == Action.EXAM_PUBLIC_LOOKUP:
        return ALLOW

    actor_id = _actor_id(actor)
    if actor_id is None:
        return Decision(False, "Authentication required.")

    exam = _exam_of(resource)
    is_instructor = exam.created_by_id == actor_id

    if action == Action.EXAM_MUTATE:
        return ALLOW if is_instructor else Decision(False, "Only the exam owner can modify this exam.")

    if action == Action.EXAM_RESULTS:
        return ALLOW if is_instructor else Decision(False, "Only the exam owner can view its attempts.")

    if action == Action.REVIEW_COMPLETE:
        return ALLOW if is_instructor else Decision(False, "Only the exam owner can review answers.")

    is_owner = _attempt_of(resource).user_id == actor_id

    if action in (Action.ATTEMPT_READ, Action.ATTEMPT_UPDATE):
        if is_owner or is_instructor:
            return ALLOW
        return Decision(False, "Not authorized to access this attempt.")

    if action == Action.ANSWER_SUBMIT:
        return ALLOW if is_owner else Decision(False, "Not authorized to add answers to this attempt.")

    if action == Action.ANSWER_UPDATE:
        if is_instructor:
            return ALLOW
        if is_owner:
            disallowed = set(fields or ()) - OWNER_WRITABLE_ANSWER_FIELDS
            if disallowed:
                return Decision(False, f"Students may only request a review; cannot set: {', '.join(sorted(disallowed))}.")
            return ALLOW
        return Decision(False, "Not authorized to update this answer.")

    return Decision(False, f"Unknown action: {action}")


def ensure(actor, action: Action, resource, fields: Optional[Iterable[str]] = None) -> None:
    decision = authorize(actor, action, resource, fields=fields)
    if not decision:
        logger.info(f"Denied {action.value} on {type(resource).__name__} {resource.pk} for user {_actor_id(actor)}: {decision.reason}")
        raise Forbidden(decision.reason)
