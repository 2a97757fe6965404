from django.contrib.auth.models import User
from django.db import models


class UserAnswer(models.Model):
    attempt = models.ForeignKey(
        'ExamAttempt',
        on_delete=models.CASCADE,
        related_name='answers',
        db_index=True
    )
    question = models.ForeignKey(
        'Question',
        on_delete=models.CASCADE,
        related_name='user_answers',
        db_index=True
    )

    answer = models.JSONField(null=True, blank=True)
    is_correct = models.BooleanField(null=True)
    score = models.IntegerField(null=True, blank=True)

    reviewed = models.BooleanField(default=False)
    review_requested = models.BooleanField(default=False, db_index=True)
    review_comment = models.TextField(null=True, blank=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    reviewed_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='reviewed_answers'
    )
    answered_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['question__order']
        indexes = [
            models.Index(fields=['attempt', 'question'], name='answer_attempt_question_idx'),
            models.Index(fields=['review_requested', 'reviewed'], name='answer_review_state_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['attempt', 'question'],
                name='unique_attempt_question'
            )
        ]

    def __str__(self):
        return f"Answer to Q{self.question.order} by {self.attempt.user.username}"
