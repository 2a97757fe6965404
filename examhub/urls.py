from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .api.views import (
    ExamViewSet, QuestionViewSet, AttemptViewSet, AnswerViewSet,
    PublicExamView, InstructorDashboardView, ReviewQueueView,
)

# Router for ViewSets
router = DefaultRouter()
router.register(r'exams', ExamViewSet, basename='exam')
router.register(r'questions', QuestionViewSet, basename='question')
router.register(r'attempts', AttemptViewSet, basename='attempt')
router.register(r'answers', AnswerViewSet, basename='answer')

urlpatterns = [
    # ============================================
    # PUBLIC
    # ============================================
    path('public/exams/<str:access_code>/', PublicExamView.as_view(), name='public-exam'),

    # ============================================
    # DASHBOARDS
    # ============================================
    path('dashboard/instructor/', InstructorDashboardView.as_view(), name='instructor-dashboard'),
    path('reviews/pending/', ReviewQueueView.as_view(), name='review-queue'),

    # ============================================
    # CORE API ROUTES (ViewSets)
    # ============================================
    path('', include(router.urls)),
]
