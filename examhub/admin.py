from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.contrib.auth.models import User
from .models import Exam, Question, ExamAttempt, UserAnswer, AuditLog, UserProfile


class UserProfileInline(admin.StackedInline):
    model = UserProfile
    can_delete = False
    verbose_name_plural = 'Profile'


class UserAdmin(BaseUserAdmin):
    inlines = [UserProfileInline]
    list_display = ['username', 'email', 'first_name', 'last_name', 'get_role', 'is_staff']
    list_filter = ['is_staff', 'is_active', 'profile__role']

    def get_role(self, obj):
        return obj.profile.get_role_display() if hasattr(obj, 'profile') else '-'
    get_role.short_description = 'Role'


admin.site.unregister(User)
admin.site.register(User, UserAdmin)


class QuestionInline(admin.TabularInline):
    model = Question
    extra = 1
    fields = ['order', 'question_type', 'content', 'points', 'options', 'correct_answer']


class UserAnswerInline(admin.TabularInline):
    model = UserAnswer
    extra = 0
    fields = ['question', 'answer', 'is_correct', 'score', 'review_requested', 'reviewed']
    readonly_fields = fields
    can_delete = False


@admin.register(Exam)
class ExamAdmin(admin.ModelAdmin):
    list_display = ['title', 'subject', 'grade', 'status', 'access_code', 'duration', 'created_by', 'created_at']
    list_filter = ['status', 'subject']
    search_fields = ['title', 'description', 'access_code']
    inlines = [QuestionInline]
    readonly_fields = ['access_code', 'created_at', 'updated_at']
    fieldsets = (
        (None, {'fields': ('title', 'description', 'subject', 'grade', 'status', 'access_code')}),
        ('Settings', {'fields': ('duration', 'exam_date', 'shuffle_questions', 'show_results', 'show_correct_answers', 'allow_review')}),
        ('Metadata', {'fields': ('created_by', 'created_at', 'updated_at'), 'classes': ('collapse',)}),
    )


@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ['id', 'exam', 'question_type', 'content_preview', 'points', 'order']
    list_filter = ['question_type', 'exam']
    search_fields = ['content']

    def content_preview(self, obj):
        return obj.content[:50] + '...' if len(obj.content) > 50 else obj.content
    content_preview.short_description = 'Question'


@admin.register(ExamAttempt)
class ExamAttemptAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'exam', 'status', 'score', 'max_score', 'start_time', 'end_time']
    list_filter = ['status', 'exam']
    search_fields = ['user__username', 'exam__title']
    inlines = [UserAnswerInline]
    # Scores only change through the grading engine.
    readonly_fields = ['exam', 'user', 'status', 'score', 'max_score', 'start_time', 'end_time']


@admin.register(UserAnswer)
class UserAnswerAdmin(admin.ModelAdmin):
    list_display = ['id', 'attempt', 'question', 'is_correct', 'score', 'review_requested', 'reviewed']
    list_filter = ['review_requested', 'reviewed', 'question__question_type']
    search_fields = ['attempt__user__username']
    readonly_fields = [
        'attempt', 'question', 'answer', 'is_correct', 'score', 'reviewed', 'review_requested',
        'review_comment', 'reviewed_at', 'reviewed_by', 'answered_at'
    ]


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'event_type', 'user', 'ip_address', 'description_preview']
    list_filter = ['event_type', 'created_at']
    search_fields = ['user__username', 'description', 'ip_address']
    readonly_fields = ['user', 'event_type', 'description', 'ip_address', 'user_agent', 'metadata', 'created_at']
    date_hierarchy = 'created_at'

    def description_preview(self, obj):
        return obj.description[:80] + '...' if len(obj.description) > 80 else obj.description
    description_preview.short_description = 'Description'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
