"""
API views for ExamHub.

Exams and questions are managed by their owners. Attempts and answers go
through the grading engine, which takes the attempt lock, authorizes, and
grades in one transaction.
"""
import random

from django.db.models import Count, Sum
from drf_spectacular.utils import (
    extend_schema, extend_schema_view, OpenApiExample, OpenApiParameter, OpenApiResponse
)
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from examhub.access import Action, ensure
from examhub.models import AuditLog, Exam, ExamAttempt, Question, UserAnswer
from examhub.permissions import CanReadAttempt, CanSubmitAnswer, IsExamOwner, IsTeacher
from examhub.services import GradingEngine, InstructorDashboard, ReviewHintService
from examhub.throttling import AccessCodeLookupThrottle, AnswerSubmissionThrottle
from .serializers import (
    AnswerSubmitSerializer, AnswerUpdateSerializer, AttemptDetailSerializer,
    ExamAttemptSerializer, ExamDetailSerializer, ExamListSerializer, ExamSerializer,
    PublicExamSerializer, QuestionSerializer, ReviewCompleteSerializer,
    ReviewRequestSerializer, StudentQuestionSerializer, UserAnswerSerializer,
)


class EngineMixin:
    engine_class = GradingEngine

    def get_engine(self):
        return self.engine_class()


# =============================================================================
# EXAMS
# =============================================================================

@extend_schema_view(
    list=extend_schema(
        summary="List my exams",
        description="Returns the exams created by the requesting user."
    ),
    retrieve=extend_schema(
        summary="Get exam details",
        description="Returns the exam with its questions and answer keys. **Owner only.**"
    ),
    create=extend_schema(
        summary="Create exam",
        description="Create an exam. The access code is issued by the server and never changes.",
        examples=[
            OpenApiExample(
                'Request Example',
                value={
                    "title": "Algebra Basics",
                    "subject": "Mathematics",
                    "grade": "Grade 9",
                    "duration": 30,
                    "show_results": True,
                    "allow_review": True
                },
                request_only=True
            )
        ]
    ),
    update=extend_schema(summary="Update exam", description="**Owner only.**"),
    partial_update=extend_schema(summary="Partially update exam", description="**Owner only.**"),
    destroy=extend_schema(summary="Delete exam", description="Deletes the exam, its questions and attempts. **Owner only.**"),
)
@extend_schema(tags=['Exams'])
class ExamViewSet(EngineMixin, viewsets.ModelViewSet):
    """
    ViewSet for managing exams.

    Everyone signed in may start an attempt on an active exam; only the owner
    may change it, add questions or list its attempts.
    """
    permission_classes = [IsAuthenticated, IsExamOwner]
    filterset_fields = ['status', 'subject']
    search_fields = ['title', 'description', 'subject']
    ordering_fields = ['title', 'created_at', 'exam_date']

    def get_queryset(self):
        queryset = Exam.objects.select_related('created_by').annotate(
            question_count=Count('questions'),
            total_points=Sum('questions__points')
        ).order_by('-created_at')
        if self.action == 'list':
            queryset = queryset.filter(created_by=self.request.user)
        return queryset

    def get_serializer_class(self):
        if self.action == 'list':
            return ExamListSerializer
        if self.action == 'retrieve':
            return ExamDetailSerializer
        return ExamSerializer

    def perform_create(self, serializer):
        serializer.save(created_by=self.request.user)

    @extend_schema(
        summary="Add question",
        description="Add a question to the exam. The answer key must match the question type.",
        request=QuestionSerializer,
        responses={201: QuestionSerializer, 400: OpenApiResponse(description="Invalid answer key or duplicate order")},
        examples=[
            OpenApiExample(
                'Multiple choice',
                value={
                    "question_type": "multiple-choice",
                    "content": "What is 2 + 2?",
                    "points": 2,
                    "order": 1,
                    "options": ["3", "4", "5"],
                    "correct_answer": "4"
                },
                request_only=True
            )
        ]
    )
    @action(detail=True, methods=['post'])
    def questions(self, request, pk=None):
        exam = self.get_object()
        serializer = QuestionSerializer(data=request.data, context={'request': request, 'exam': exam})
        serializer.is_valid(raise_exception=True)
        serializer.save(exam=exam)
        return Response(serializer.data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="List or start attempts",
        description="""
**GET** lists every attempt on this exam. Owner only.

**POST** starts a new attempt for the requesting user. The exam must be active.
""",
        request=None,
        responses={200: ExamAttemptSerializer(many=True), 201: ExamAttemptSerializer}
    )
    @action(detail=True, methods=['get', 'post'], permission_classes=[IsAuthenticated])
    def attempts(self, request, pk=None):
        if request.method == 'POST':
            attempt = self.get_engine().start_attempt(pk, request.user)
            AuditLog.log(
                AuditLog.EventType.ATTEMPT_START,
                f"Started attempt on: {attempt.exam.title}",
                request=request,
                attempt=attempt
            )
            serializer = ExamAttemptSerializer(attempt, context={'request': request})
            return Response(serializer.data, status=status.HTTP_201_CREATED)

        exam = self.get_object()
        ensure(request.user, Action.EXAM_RESULTS, exam)
        attempts = exam.attempts.select_related('exam', 'user').order_by('-start_time')
        serializer = ExamAttemptSerializer(attempts, many=True, context={'request': request})
        return Response(serializer.data)


# =============================================================================
# QUESTIONS
# =============================================================================

@extend_schema_view(
    update=extend_schema(
        summary="Update question",
        responses={200: QuestionSerializer, 400: OpenApiResponse(description="Invalid answer key, or scoring change while attempts are in progress")}
    ),
    partial_update=extend_schema(summary="Partially update question"),
    destroy=extend_schema(
        summary="Delete question",
        responses={204: None, 400: OpenApiResponse(description="Exam has attempts in progress")}
    ),
)
@extend_schema(tags=['Questions'])
class QuestionViewSet(EngineMixin,
                      mixins.ListModelMixin,
                      mixins.RetrieveModelMixin,
                      mixins.UpdateModelMixin,
                      mixins.DestroyModelMixin,
                      viewsets.GenericViewSet):
    """
    Questions of exams owned by the requesting user.

    Questions are created through ``POST /exams/<id>/questions/``.
    Deleting a question also deletes the answers given to it. While the exam
    has attempts in progress, scoring fields cannot change and questions
    cannot be deleted.
    """
    serializer_class = QuestionSerializer
    permission_classes = [IsAuthenticated, IsExamOwner]
    filterset_fields = ['exam', 'question_type']

    def get_queryset(self):
        queryset = Question.objects.select_related('exam').order_by('exam_id', 'order')
        if self.action == 'list':
            queryset = queryset.filter(exam__created_by=self.request.user)
        return queryset

    def perform_update(self, serializer):
        serializer.instance = self.get_engine().update_question(
            serializer.instance.pk, serializer.validated_data, self.request.user
        )

    def perform_destroy(self, instance):
        self.get_engine().delete_question(instance.pk, self.request.user)


# =============================================================================
# ATTEMPTS
# =============================================================================

@extend_schema_view(
    list=extend_schema(
        summary="List my attempts",
        description="Attempts started by the requesting user."
    ),
    retrieve=extend_schema(
        summary="Get attempt details",
        description="Attempt with its answers. Visible to the attempt owner and the exam owner."
    ),
)
@extend_schema(tags=['Attempts'])
class AttemptViewSet(EngineMixin,
                     mixins.ListModelMixin,
                     mixins.RetrieveModelMixin,
                     viewsets.GenericViewSet):
    permission_classes = [IsAuthenticated, CanReadAttempt]
    filterset_fields = ['exam', 'status']

    def get_queryset(self):
        queryset = ExamAttempt.objects.select_related('exam', 'user').order_by('-start_time')
        if self.action == 'list':
            queryset = queryset.filter(user=self.request.user)
        elif self.action == 'retrieve':
            queryset = queryset.prefetch_related('answers__question')
        return queryset

    def get_serializer_class(self):
        if self.action == 'retrieve':
            return AttemptDetailSerializer
        return ExamAttemptSerializer

    @extend_schema(
        summary="Submit answer",
        description="""
Submit one answer. It is validated against the question type and graded at once.

- Multiple-choice: one of the option strings
- True/false: `true` or `false`
- Essay: non-empty text, scored 0 until a review accepts it
""",
        request=AnswerSubmitSerializer,
        responses={
            201: UserAnswerSerializer,
            400: OpenApiResponse(description="Invalid answer, duplicate answer, or wrong question"),
            403: OpenApiResponse(description="Not your attempt, attempt completed, or time is up")
        },
        examples=[
            OpenApiExample('Multiple choice', value={"question_id": 1, "answer": "4"}, request_only=True),
            OpenApiExample('True/false', value={"question_id": 2, "answer": True}, request_only=True),
        ]
    )
    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated, CanSubmitAnswer],
            throttle_classes=[AnswerSubmissionThrottle])
    def answers(self, request, pk=None):
        attempt = self.get_object()
        serializer = AnswerSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        answer = self.get_engine().submit_answer(
            attempt.pk,
            serializer.validated_data['question_id'],
            serializer.validated_data['answer'],
            request.user
        )
        AuditLog.log(
            AuditLog.EventType.ANSWER_SUBMIT,
            f"Answered question {answer.question_id} in attempt {attempt.pk}",
            request=request,
            attempt=attempt,
            metadata={'answer_id': answer.pk}
        )
        return Response(
            UserAnswerSerializer(answer, context={'request': request}).data,
            status=status.HTTP_201_CREATED
        )

    @extend_schema(
        summary="Complete attempt",
        description="Close the attempt and fix its final score. No answers are accepted afterwards.",
        request=None,
        responses={200: AttemptDetailSerializer}
    )
    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated])
    def complete(self, request, pk=None):
        attempt = self.get_engine().complete_attempt(pk, request.user)
        AuditLog.log(
            AuditLog.EventType.ATTEMPT_COMPLETE,
            f"Completed attempt {attempt.pk} with score {attempt.score}/{attempt.max_score}",
            request=request,
            attempt=attempt,
            metadata={'score': attempt.score, 'max_score': attempt.max_score}
        )
        return Response(AttemptDetailSerializer(attempt, context={'request': request}).data)

    @extend_schema(
        summary="Questions for this attempt",
        description="Questions without answer keys. Shuffled per attempt when the exam asks for it.",
        responses={200: StudentQuestionSerializer(many=True)}
    )
    @action(detail=True, methods=['get'])
    def questions(self, request, pk=None):
        attempt = self.get_object()
        questions = list(attempt.exam.questions.order_by('order'))
        if attempt.exam.shuffle_questions:
            # Same order every time this attempt is loaded.
            random.Random(attempt.pk).shuffle(questions)
        return Response(StudentQuestionSerializer(questions, many=True).data)


# =============================================================================
# ANSWERS
# =============================================================================

@extend_schema(tags=['Answers'])
class AnswerViewSet(EngineMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    Single answers.

    Students may only set ``review_requested``. Exam owners complete reviews,
    either with ``reviewed``/``is_correct`` or the ``review`` action.
    """
    queryset = UserAnswer.objects.select_related('question', 'attempt', 'attempt__exam', 'attempt__user')
    serializer_class = UserAnswerSerializer
    permission_classes = [IsAuthenticated, CanReadAttempt]

    def _log_review(self, request, answer, fields):
        if 'reviewed' in fields:
            event_type = AuditLog.EventType.REVIEW_COMPLETE
            description = f"Reviewed answer {answer.pk}: {'accepted' if answer.is_correct else 'rejected'}"
        else:
            event_type = AuditLog.EventType.REVIEW_REQUEST
            description = f"Requested review of answer {answer.pk}"
        AuditLog.log(
            event_type,
            description,
            request=request,
            attempt=answer.attempt,
            metadata={'answer_id': answer.pk, 'score': answer.score}
        )

    @extend_schema(
        summary="Update answer",
        description="""
Field-level update.

- `{"review_requested": true}` asks for a review (attempt owner or exam owner)
- `{"reviewed": true, "is_correct": true, "review_comment": "..."}` completes it (exam owner only)

`score` is always derived and cannot be set.
""",
        request=AnswerUpdateSerializer,
        responses={200: UserAnswerSerializer}
    )
    def update(self, request, pk=None, partial=False):
        serializer = AnswerUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        fields = serializer.validated_data

        answer = self.get_engine().update_answer(pk, fields, request.user)
        self._log_review(request, answer, fields)
        return Response(UserAnswerSerializer(answer, context={'request': request}).data)

    @extend_schema(summary="Partially update answer", request=AnswerUpdateSerializer, responses={200: UserAnswerSerializer})
    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk, partial=True)

    @extend_schema(
        summary="Complete review",
        description="Accept or reject an essay answer that has a pending review request. **Exam owner only.**",
        request=ReviewCompleteSerializer,
        responses={
            200: UserAnswerSerializer,
            400: OpenApiResponse(description="No review was requested, or it was already reviewed"),
            403: OpenApiResponse(description="Not the exam owner")
        },
        examples=[
            OpenApiExample('Accept', value={"accepted": True, "comment": "Good reasoning."}, request_only=True)
        ]
    )
    @action(detail=True, methods=['post'])
    def review(self, request, pk=None):
        serializer = ReviewCompleteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        answer = self.get_engine().complete_review(
            pk,
            serializer.validated_data['accepted'],
            serializer.validated_data['comment'],
            request.user
        )
        self._log_review(request, answer, {'reviewed': True})
        return Response(UserAnswerSerializer(answer, context={'request': request}).data)


# =============================================================================
# PUBLIC
# =============================================================================

@extend_schema(tags=['Public'])
class PublicExamView(EngineMixin, APIView):
    """Look up an active exam by its access code. Returns metadata only."""
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [AccessCodeLookupThrottle]

    @extend_schema(
        summary="Find exam by access code",
        responses={
            200: PublicExamSerializer,
            403: OpenApiResponse(description="Exam is not active"),
            404: OpenApiResponse(description="No exam with this code")
        }
    )
    def get(self, request, access_code):
        info = self.get_engine().get_exam_by_access_code(access_code)
        return Response(PublicExamSerializer(info.to_dict()).data)


# =============================================================================
# DASHBOARD
# =============================================================================

@extend_schema(tags=['Dashboards'])
class InstructorDashboardView(APIView):
    permission_classes = [IsAuthenticated, IsTeacher]

    @extend_schema(
        summary="Instructor dashboard",
        description="Totals, recent exams, recent results and pending review requests."
    )
    def get(self, request):
        dashboard = InstructorDashboard(request.user)
        context = {'request': request}
        return Response({
            'stats': dashboard.get_stats(),
            'recent_exams': ExamListSerializer(dashboard.recent_exams(), many=True, context=context).data,
            'recent_results': ExamAttemptSerializer(dashboard.recent_results(), many=True, context=context).data,
            'review_requests': ReviewRequestSerializer(
                dashboard.review_requests(), many=True, context=context
            ).data,
        })


@extend_schema(tags=['Dashboards'])
class ReviewQueueView(APIView):
    """Essay answers waiting for the requesting instructor's review."""
    permission_classes = [IsAuthenticated, IsTeacher]

    @extend_schema(
        summary="Pending reviews",
        description="Answers with an open review request, newest first, each with a similarity hint.",
        parameters=[
            OpenApiParameter(name='exam', type=int, location='query', description='Only this exam'),
        ],
        responses={200: ReviewRequestSerializer(many=True)}
    )
    def get(self, request):
        pending = InstructorDashboard(request.user).pending_reviews()
        exam_id = request.query_params.get('exam')
        if exam_id:
            pending = pending.filter(attempt__exam_id=exam_id)
        context = {'request': request, 'hint_service': ReviewHintService()}
        return Response(ReviewRequestSerializer(pending, many=True, context=context).data)
