from django.db import models
from django.contrib.auth.models import User


class AuditLog(models.Model):
    """Append-only record of grading, review and access events."""

    class EventType(models.TextChoices):
        ATTEMPT_START = 'attempt_start', 'Attempt Started'
        ANSWER_SUBMIT = 'answer_submit', 'Answer Submitted'
        ATTEMPT_COMPLETE = 'attempt_complete', 'Attempt Completed'
        REVIEW_REQUEST = 'review_request', 'Review Requested'
        REVIEW_COMPLETE = 'review_complete', 'Review Completed'
        PERMISSION_DENIED = 'permission_denied', 'Permission Denied'
        INVARIANT_VIOLATION = 'invariant_violation', 'Score Invariant Violation'

    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs'
    )
    event_type = models.CharField(max_length=30, choices=EventType.choices, db_index=True)
    description = models.TextField()
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'event_type'], name='audit_user_event_idx'),
        ]

    def __str__(self):
        return f"[{self.get_event_type_display()}] {self.user or 'anonymous'}: {self.description[:60]}"

    @staticmethod
    def client_ip(request):
        forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
        if forwarded:
            return forwarded.split(',')[0].strip()
        return request.META.get('REMOTE_ADDR')

    @classmethod
    def log(cls, event_type, description, request=None, user=None, attempt=None, metadata=None):
        """
        Write one audit row.

        The acting user defaults to the authenticated request user. Passing
        ``attempt`` records its id and exam id in the metadata.
        """
        metadata = dict(metadata or {})
        if attempt is not None:
            metadata.setdefault('attempt_id', attempt.pk)
            metadata.setdefault('exam_id', attempt.exam_id)

        ip_address = None
        user_agent = ''
        if request is not None:
            ip_address = cls.client_ip(request)
            user_agent = request.META.get('HTTP_USER_AGENT', '')[:500]
            if user is None and getattr(request, 'user', None) is not None and request.user.is_authenticated:
                user = request.user

        return cls.objects.create(
            user=user,
            event_type=event_type,
            description=description,
            ip_address=ip_address,
            user_agent=user_agent,
            metadata=metadata
        )
