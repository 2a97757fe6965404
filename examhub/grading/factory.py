from examhub.exceptions import AnswerValidationError, QuestionMismatch
from examhub.models import Question
from .base import GradingRule, GradingResult, ValidAnswer
from .essay import DeferredEssayRule
from .objective import ObjectiveGradingRule

_RULES = {
    Question.QuestionType.MULTIPLE_CHOICE: ObjectiveGradingRule,
    Question.QuestionType.TRUE_FALSE: ObjectiveGradingRule,
    Question.QuestionType.ESSAY: DeferredEssayRule,
}


def get_grading_rule(question_type: str) -> GradingRule:
    rule_class = _RULES.get(question_type)
    if rule_class is None:
        raise AnswerValidationError(
            f"No grading rule for question type {question_type!r}.",
            code=AnswerValidationError.UNSUPPORTED_TYPE
        )
    return rule_class()


def grade(question: Question, answer: ValidAnswer) -> GradingResult:
    """Grade a validated answer. Pure: the same inputs always give the same result."""
    if answer.question_type != question.question_type:
        raise QuestionMismatch("Answer was validated against a different question type.")
    return get_grading_rule(question.question_type).grade_answer(question, answer)
