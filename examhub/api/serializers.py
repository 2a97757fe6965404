from django.contrib.auth.models import User
from rest_framework import serializers

from examhub.models import Exam, Question, ExamAttempt, UserAnswer
from examhub.models.question import check_answer_key
from examhub.services import ReviewHintService


def _viewer(context):
    request = context.get('request')
    return getattr(request, 'user', None)


def _is_exam_owner(user, exam):
    return user is not None and user.is_authenticated and exam.created_by_id == user.pk


class UserSerializer(serializers.ModelSerializer):
    role = serializers.CharField(source='profile.role', read_only=True)

    class Meta:
        model = User
        fields = ['id', 'username', 'first_name', 'last_name', 'role']
        read_only_fields = fields


# =============================================================================
# QUESTIONS
# =============================================================================

class QuestionSerializer(serializers.ModelSerializer):
    """Full question including the answer key, for the exam owner."""

    class Meta:
        model = Question
        fields = [
            'id', 'exam', 'question_type', 'content', 'points', 'order',
            'options', 'correct_answer', 'accepted_answers'
        ]
        read_only_fields = ['id', 'exam']
        # Order uniqueness is checked in validate() since exam is not an input.
        validators = []

    def validate(self, data):
        instance = self.instance

        def current(field):
            if field in data:
                return data[field]
            return getattr(instance, field, None) if instance else None

        errors = check_answer_key(
            current('question_type'),
            current('options'),
            current('correct_answer'),
            current('accepted_answers'),
        )
        if errors:
            raise serializers.ValidationError(errors)

        exam = self.context.get('exam') or (instance.exam if instance else None)
        order = current('order')
        if exam is not None and order is not None:
            clash = Question.objects.filter(exam=exam, order=order)
            if instance is not None:
                clash = clash.exclude(pk=instance.pk)
            if clash.exists():
                raise serializers.ValidationError({'order': f"Question order {order} is already used in this exam."})
        return data


class StudentQuestionSerializer(serializers.ModelSerializer):
    """Question as shown while taking an exam: no answer key, no references."""

    class Meta:
        model = Question
        fields = ['id', 'question_type', 'content', 'points', 'order', 'options']
        read_only_fields = fields


# =============================================================================
# EXAMS
# =============================================================================

class ExamListSerializer(serializers.ModelSerializer):
    question_count = serializers.IntegerField(read_only=True)
    total_points = serializers.IntegerField(read_only=True)

    class Meta:
        model = Exam
        fields = [
            'id', 'title', 'subject', 'grade', 'duration', 'status',
            'access_code', 'exam_date', 'question_count', 'total_points', 'created_at'
        ]


class ExamSerializer(serializers.ModelSerializer):
    """Serializer for creating/updating exams. The access code is issued by the server."""

    class Meta:
        model = Exam
        fields = [
            'id', 'title', 'description', 'subject', 'grade', 'duration', 'status',
            'access_code', 'shuffle_questions', 'show_results', 'show_correct_answers',
            'allow_review', 'exam_date', 'created_by', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'access_code', 'created_by', 'created_at', 'updated_at']


class ExamDetailSerializer(ExamSerializer):
    questions = QuestionSerializer(many=True, read_only=True)
    created_by = UserSerializer(read_only=True)
    question_count = serializers.IntegerField(read_only=True)
    total_points = serializers.IntegerField(read_only=True)

    class Meta(ExamSerializer.Meta):
        fields = ExamSerializer.Meta.fields + ['questions', 'question_count', 'total_points']


class PublicExamSerializer(serializers.Serializer):
    """Exam metadata returned by access-code lookup. Never includes questions."""
    id = serializers.IntegerField()
    title = serializers.CharField()
    description = serializers.CharField(allow_blank=True)
    subject = serializers.CharField(allow_blank=True)
    grade = serializers.CharField(allow_blank=True)
    duration = serializers.IntegerField()


# =============================================================================
# ANSWERS
# =============================================================================

class UserAnswerSerializer(serializers.ModelSerializer):
    question_type = serializers.CharField(source='question.question_type', read_only=True)
    max_points = serializers.IntegerField(source='question.points', read_only=True)

    class Meta:
        model = UserAnswer
        fields = [
            'id', 'attempt', 'question', 'question_type', 'answer',
            'is_correct', 'score', 'max_points', 'reviewed', 'review_requested',
            'review_comment', 'reviewed_at', 'answered_at'
        ]
        read_only_fields = fields

    def to_representation(self, instance):
        data = super().to_representation(instance)
        exam = instance.attempt.exam
        viewer = _viewer(self.context)
        if _is_exam_owner(viewer, exam):
            return data
        if not exam.show_results:
            data['is_correct'] = None
            data['score'] = None
        if exam.show_correct_answers and instance.attempt.is_completed:
            data['correct_answer'] = instance.question.correct_answer
        return data


class AnswerSubmitSerializer(serializers.Serializer):
    question_id = serializers.IntegerField()
    # Type checking against the question happens in the engine.
    answer = serializers.JSONField(allow_null=True)


class AnswerUpdateSerializer(serializers.Serializer):
    review_requested = serializers.BooleanField(required=False)
    reviewed = serializers.BooleanField(required=False)
    is_correct = serializers.BooleanField(required=False, allow_null=True)
    score = serializers.IntegerField(required=False)
    review_comment = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate(self, data):
        unknown = set(self.initial_data) - set(self.fields)
        if unknown:
            raise serializers.ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}.")
        if not data:
            raise serializers.ValidationError("No fields to update.")
        return data


class ReviewCompleteSerializer(serializers.Serializer):
    accepted = serializers.BooleanField()
    comment = serializers.CharField(required=False, allow_blank=True, default='')


# =============================================================================
# ATTEMPTS
# =============================================================================

class ExamAttemptSerializer(serializers.ModelSerializer):
    exam_title = serializers.CharField(source='exam.title', read_only=True)
    username = serializers.CharField(source='user.username', read_only=True)
    deadline = serializers.DateTimeField(read_only=True)

    class Meta:
        model = ExamAttempt
        fields = [
            'id', 'exam', 'exam_title', 'user', 'username', 'status',
            'start_time', 'end_time', 'deadline', 'score', 'max_score'
        ]
        read_only_fields = fields

    def to_representation(self, instance):
        data = super().to_representation(instance)
        viewer = _viewer(self.context)
        if not instance.exam.show_results and not _is_exam_owner(viewer, instance.exam):
            data['score'] = None
        return data


class AttemptDetailSerializer(ExamAttemptSerializer):
    answers = UserAnswerSerializer(many=True, read_only=True)

    class Meta(ExamAttemptSerializer.Meta):
        fields = ExamAttemptSerializer.Meta.fields + ['answers']
        read_only_fields = fields


# =============================================================================
# REVIEW QUEUE
# =============================================================================

class ReviewRequestSerializer(serializers.ModelSerializer):
    """Pending review as listed for the instructor, with a similarity hint."""
    attempt_id = serializers.IntegerField(source='attempt.id', read_only=True)
    exam_title = serializers.CharField(source='attempt.exam.title', read_only=True)
    student = serializers.CharField(source='attempt.user.username', read_only=True)
    question_content = serializers.CharField(source='question.content', read_only=True)
    max_points = serializers.IntegerField(source='question.points', read_only=True)
    hint = serializers.SerializerMethodField()

    class Meta:
        model = UserAnswer
        fields = [
            'id', 'attempt_id', 'exam_title', 'student', 'question',
            'question_content', 'max_points', 'answer', 'answered_at', 'hint'
        ]
        read_only_fields = fields

    def get_hint(self, obj):
        service = self.context.get('hint_service') or ReviewHintService()
        return service.hint_for(obj)
