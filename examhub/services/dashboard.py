"""
Instructor dashboard queries: totals, recent exams, recent results and the
queue of essay answers waiting for review.
"""
from django.conf import settings
from django.db.models import Count, Sum

from examhub.models import Exam, ExamAttempt, UserAnswer


def _limit(name, fallback):
    limits = getattr(settings, 'GRADING_ENGINE', {}).get('DASHBOARD_LIMITS', {})
    return limits.get(name, fallback)


class InstructorDashboard:
    def __init__(self, instructor):
        self.instructor = instructor

    def _attempts(self):
        return ExamAttempt.objects.filter(exam__created_by=self.instructor)

    def get_stats(self):
        attempts = self._attempts()
        by_status = dict(attempts.order_by().values_list('status').annotate(n=Count('id')))
        return {
            'exam_count': Exam.objects.filter(created_by=self.instructor).count(),
            'student_count': attempts.order_by().values('user').distinct().count(),
            'completed_count': by_status.get(ExamAttempt.Status.COMPLETED, 0),
            'pending_count': by_status.get(ExamAttempt.Status.IN_PROGRESS, 0),
            'review_request_count': self.pending_reviews().count(),
        }

    def recent_exams(self, limit=None):
        limit = limit or _limit('recent_exams', 3)
        return (
            Exam.objects.filter(created_by=self.instructor)
            .annotate(question_count=Count('questions'), total_points=Sum('questions__points'))
            .order_by('-created_at')[:limit]
        )

    def recent_results(self, limit=None):
        limit = limit or _limit('recent_results', 4)
        return self._attempts().select_related('exam', 'user').order_by('-start_time')[:limit]

    def pending_reviews(self):
        return (
            UserAnswer.objects.filter(
                attempt__exam__created_by=self.instructor,
                review_requested=True,
                reviewed=False
            )
            .select_related('question', 'attempt', 'attempt__exam', 'attempt__user')
            .order_by('-id')
        )

    def review_requests(self, limit=None):
        limit = limit or _limit('review_requests', 5)
        return self.pending_reviews()[:limit]
