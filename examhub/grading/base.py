from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Union

AnswerValue = Union[str, bool]


@dataclass(frozen=True)
class ValidAnswer:
    question_type: str
    value: AnswerValue


@dataclass(frozen=True)
class GradingResult:
    is_correct: Optional[bool]
    score: int
    needs_review: bool
    grading_method: str

    @property
    def is_deferred(self) -> bool:
        return self.is_correct is None


class GradingRule(ABC):
    @abstractmethod
    def grade_answer(self, question, answer: ValidAnswer) -> GradingResult:
        pass

    @abstractmethod
    def get_rule_name(self) -> str:
        pass
