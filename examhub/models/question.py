from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

MIN_OPTIONS = 2
MAX_OPTIONS = 6


def check_answer_key(question_type, options, correct_answer, accepted_answers):
    """
    Check that the answer fields match the shape required by the question type.

    Multiple-choice carries 2-6 options and a string key that is one of them,
    true/false carries a boolean key, and essay carries no key at all (only
    reference answers for reviewers). Returns a dict of field errors.
    """
    errors = {}
    if question_type == Question.QuestionType.MULTIPLE_CHOICE:
        if not isinstance(options, list) or not all(isinstance(o, str) and o.strip() for o in options):
            errors['options'] = "Options must be a list of non-empty strings."
        elif not MIN_OPTIONS <= len(options) <= MAX_OPTIONS:
            errors['options'] = f"Multiple-choice questions need {MIN_OPTIONS} to {MAX_OPTIONS} options."
        elif len(set(options)) != len(options):
            errors['options'] = "Options must be unique."
        elif not isinstance(correct_answer, str) or correct_answer not in options:
            errors['correct_answer'] = "The correct answer must be one of the options."
        if accepted_answers:
            errors['accepted_answers'] = "Only essay questions carry accepted answers."

    elif question_type == Question.QuestionType.TRUE_FALSE:
        if options:
            errors['options'] = "True/false questions do not take options."
        if not isinstance(correct_answer, bool):
            errors['correct_answer'] = "The correct answer must be true or false."
        if accepted_answers:
            errors['accepted_answers'] = "Only essay questions carry accepted answers."

    elif question_type == Question.QuestionType.ESSAY:
        if options:
            errors['options'] = "Essay questions do not take options."
        if correct_answer is not None:
            errors['correct_answer'] = "Essay questions are graded by review and have no correct answer."
        if accepted_answers is not None and (
            not isinstance(accepted_answers, list) or not all(isinstance(a, str) for a in accepted_answers)
        ):
            errors['accepted_answers'] = "Accepted answers must be a list of strings."

    else:
        errors['question_type'] = f"Unsupported question type: {question_type!r}"
    return errors


class Question(models.Model):
    class QuestionType(models.TextChoices):
        MULTIPLE_CHOICE = 'multiple-choice', 'Multiple Choice'
        TRUE_FALSE = 'true-false', 'True/False'
        ESSAY = 'essay', 'Essay'

    exam = models.ForeignKey(
        'Exam',
        on_delete=models.CASCADE,
        related_name='questions',
        db_index=True
    )
    question_type = models.CharField(
        max_length=20,
        choices=QuestionType.choices,
        db_index=True
    )
    content = models.TextField()
    points = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    order = models.PositiveIntegerField()
    options = models.JSONField(null=True, blank=True)
    correct_answer = models.JSONField(null=True, blank=True)
    accepted_answers = models.JSONField(null=True, blank=True)

    class Meta:
        ordering = ['order', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['exam', 'order'],
                name='unique_exam_question_order'
            )
        ]

    def __str__(self):
        return f"Q{self.order}: {self.content[:50]}..."

    def clean(self):
        errors = check_answer_key(self.question_type, self.options, self.correct_answer, self.accepted_answers)
        if errors:
            raise ValidationError(errors)

    @property
    def is_essay(self):
        return self.question_type == self.QuestionType.ESSAY

    @property
    def is_objective(self):
        return self.question_type in (self.QuestionType.MULTIPLE_CHOICE, self.QuestionType.TRUE_FALSE)

    @property
    def answer_key(self):
        """The correct answer typed by question type, or None when it is missing or malformed."""
        if self.question_type == self.QuestionType.MULTIPLE_CHOICE and isinstance(self.correct_answer, str):
            return self.correct_answer
        if self.question_type == self.QuestionType.TRUE_FALSE and isinstance(self.correct_answer, bool):
            return self.correct_answer
        return None
