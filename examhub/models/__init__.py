from .exam import Exam
from .question import Question
from .attempt import ExamAttempt
from .answer import UserAnswer
from .audit import AuditLog
from .user_profile import UserProfile

__all__ = [
    'Exam', 'Question', 'ExamAttempt', 'UserAnswer',
    'AuditLog', 'UserProfile',
]
