from django.contrib.auth.models import User
from django.db import models
from django.utils import timezone


class ExamAttempt(models.Model):
    class Status(models.TextChoices):
        IN_PROGRESS = 'in-progress', 'In Progress'
        COMPLETED = 'completed', 'Completed'

    exam = models.ForeignKey(
        'Exam',
        on_delete=models.CASCADE,
        related_name='attempts',
        db_index=True
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='exam_attempts',
        db_index=True
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.IN_PROGRESS,
        db_index=True
    )
    start_time = models.DateTimeField(default=timezone.now)
    end_time = models.DateTimeField(null=True, blank=True)

    # Owned by AttemptAggregator; never written by API callers.
    score = models.IntegerField(null=True, blank=True)
    max_score = models.IntegerField(null=True, blank=True)

    class Meta:
        ordering = ['-start_time']
        indexes = [
            models.Index(fields=['user', 'exam'], name='attempt_user_exam_idx'),
            models.Index(fields=['exam', 'status'], name='attempt_exam_status_idx'),
        ]

    def __str__(self):
        return f"{self.user.username} - {self.exam.title} ({self.get_status_display()})"

    @property
    def is_completed(self):
        return self.status == self.Status.COMPLETED

    @property
    def deadline(self):
        return self.start_time + timezone.timedelta(minutes=self.exam.duration)

    @property
    def is_expired(self):
        if self.is_completed:
            return False
        return timezone.now() > self.deadline
