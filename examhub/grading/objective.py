import logging

from .base import GradingRule, GradingResult, ValidAnswer

logger = logging.getLogger(__name__)


class ObjectiveGradingRule(GradingRule):
    """
    Deterministic grading for multiple-choice and true/false questions.

    The submitted value must equal the answer key exactly, including its type:
    a string never matches a boolean key. A question without a usable key is
    treated as ungradable and awards nothing.
    """

    def get_rule_name(self) -> str:
        return "exact_match"

    def grade_answer(self, question, answer: ValidAnswer) -> GradingResult:
        expected = question.answer_key

        if expected is None:
            logger.warning(f"Question {question.pk} has no usable correct answer; grading as incorrect")
            return GradingResult(
                is_correct=False,
                score=0,
                needs_review=False,
                grading_method=f"{self.get_rule_name()}_ungradable"
            )

        is_correct = type(answer.value) is type(expected) and answer.value == expected
        return GradingResult(
            is_correct=is_correct,
            score=question.points if is_correct else 0,
            needs_review=False,
            grading_method=self.get_rule_name()
        )
