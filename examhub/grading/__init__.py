from .base import GradingRule, GradingResult, ValidAnswer
from .essay import DeferredEssayRule
from .objective import ObjectiveGradingRule
from .factory import get_grading_rule, grade
from .validation import validate

__all__ = [
    'GradingRule', 'GradingResult', 'ValidAnswer',
    'DeferredEssayRule', 'ObjectiveGradingRule',
    'get_grading_rule', 'grade', 'validate',
]
