import secrets
import string

from django.conf import settings
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

ACCESS_CODE_ALPHABET = string.ascii_uppercase + string.digits


class Exam(models.Model):
    class Status(models.TextChoices):
        DRAFT = 'draft', 'Draft'
        ACTIVE = 'active', 'Active'
        COMPLETED = 'completed', 'Completed'

    title = models.CharField(max_length=300)
    description = models.TextField(blank=True)
    subject = models.CharField(max_length=100, blank=True)
    grade = models.CharField(max_length=50, blank=True)
    duration = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Duration in minutes"
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True
    )
    access_code = models.CharField(max_length=16, unique=True, editable=False)

    shuffle_questions = models.BooleanField(default=False)
    show_results = models.BooleanField(default=True)
    show_correct_answers = models.BooleanField(default=False)
    allow_review = models.BooleanField(default=True)
    exam_date = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='created_exams'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['created_by', 'status'], name='exam_owner_status_idx'),
        ]

    def __str__(self):
        return self.title

    def save(self, *args, **kwargs):
        if self.pk:
            issued = type(self).objects.filter(pk=self.pk).values_list('access_code', flat=True).first()
            if issued and self.access_code != issued:
                raise ValidationError({'access_code': "Access code cannot be changed once issued."})
        if not self.access_code:
            self.access_code = self._generate_access_code()
        super().save(*args, **kwargs)

    @classmethod
    def _generate_access_code(cls):
        config = getattr(settings, 'GRADING_ENGINE', {})
        length = config.get('ACCESS_CODE_LENGTH', 6)
        retries = config.get('ACCESS_CODE_MAX_RETRIES', 10)
        for _ in range(retries):
            code = ''.join(secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(length))
            if not cls.objects.filter(access_code=code).exists():
                return code
        raise RuntimeError(f"Could not issue a unique access code after {retries} tries")

    def get_total_points(self):
        return self.questions.aggregate(total=models.Sum('points'))['total'] or 0

    def get_question_count(self):
        return self.questions.count()

    @property
    def is_open(self):
        return self.status == self.Status.ACTIVE
