from .aggregator import AttemptAggregator
from .review import ReviewWorkflow
from .engine import GradingEngine, PublicExamInfo
from .dashboard import InstructorDashboard
from .review_hints import ReviewHintService

__all__ = [
    'AttemptAggregator', 'ReviewWorkflow', 'GradingEngine', 'PublicExamInfo',
    'InstructorDashboard', 'ReviewHintService',
]
