from .base import GradingRule, GradingResult, ValidAnswer


class DeferredEssayRule(GradingRule):
    """Essays are never auto-graded: they score 0 until an instructor completes a review."""

    def get_rule_name(self) -> str:
        return "deferred_review"

    def grade_answer(self, question, answer: ValidAnswer) -> GradingResult:
        return GradingResult(
            is_correct=None,
            score=0,
            needs_review=False,
            grading_method=self.get_rule_name()
        )

    @staticmethod
    def review_score(question, accepted: bool) -> int:
        return question.points if accepted else 0
