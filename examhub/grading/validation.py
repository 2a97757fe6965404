"""
Answer validation: checks a raw submitted answer against its question's shape
before anything is graded or stored.
"""
from typing import Any

from examhub.exceptions import AnswerValidationError
from examhub.models import Question
from .base import ValidAnswer

BOOLEAN_LITERALS = {'true': True, 'false': False}


def validate(question: Question, raw_answer: Any) -> ValidAnswer:
    """Return a ValidAnswer for ``raw_answer`` or raise AnswerValidationError with the reason."""
    question_type = question.question_type

    if question_type == Question.QuestionType.MULTIPLE_CHOICE:
        return ValidAnswer(question_type, _validate_option(question, raw_answer))
    if question_type == Question.QuestionType.TRUE_FALSE:
        return ValidAnswer(question_type, _validate_boolean(raw_answer))
    if question_type == Question.QuestionType.ESSAY:
        return ValidAnswer(question_type, _validate_text(raw_answer))

    raise AnswerValidationError(
        f"Question type {question_type!r} cannot be answered.",
        code=AnswerValidationError.UNSUPPORTED_TYPE
    )


def _validate_option(question, raw_answer):
    options = question.options or []
    if isinstance(raw_answer, str) and raw_answer in options:
        return raw_answer
    raise AnswerValidationError(
        "Answer must be one of the question's options.",
        code=AnswerValidationError.INVALID_OPTION
    )


def _validate_boolean(raw_answer):
    # bool is checked by type so 0/1 are not accepted as answers
    if isinstance(raw_answer, bool):
        return raw_answer
    if isinstance(raw_answer, str) and raw_answer in BOOLEAN_LITERALS:
        return BOOLEAN_LITERALS[raw_answer]
    raise AnswerValidationError(
        "Answer must be true or false.",
        code=AnswerValidationError.INVALID_BOOLEAN
    )


def _validate_text(raw_answer):
    if isinstance(raw_answer, str) and raw_answer.strip():
        return raw_answer
    raise AnswerValidationError(
        "Essay answer cannot be empty.",
        code=AnswerValidationError.EMPTY_ANSWER
    )
