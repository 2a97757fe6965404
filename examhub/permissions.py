from rest_framework import permissions

from examhub.access import Action, authorize


class GatePermission(permissions.BasePermission):
    """Object permission backed by the access control gate."""
    action = None

    def has_object_permission(self, request, view, obj):
        decision = authorize(request.user, self.action, obj)
        if not decision:
            self.message = decision.reason
        return decision.allowed


class IsExamOwner(GatePermission):
    action = Action.EXAM_MUTATE

    def has_object_permission(self, request, view, obj):
        # Questions are gated through their exam.
        exam = getattr(obj, 'exam', obj)
        decision = authorize(request.user, self.action, exam)
        if not decision:
            self.message = decision.reason
        return decision.allowed


class CanReadAttempt(GatePermission):
    action = Action.ATTEMPT_READ


class CanSubmitAnswer(permissions.BasePermission):
    message = "You cannot answer in this attempt."

    def has_object_permission(self, request, view, obj):
        decision = authorize(request.user, Action.ANSWER_SUBMIT, obj)
        if not decision:
            self.message = decision.reason
            return False
        if obj.is_completed:
            self.message = "This attempt is already completed."
            return False
        if obj.is_expired:
            self.message = "The time allowed for this attempt has run out."
            return False
        return True


class IsTeacher(permissions.BasePermission):
    message = "Only teachers can perform this action."

    def has_permission(self, request, view):
        return _is_teacher(request.user)


def _is_teacher(user):
    return hasattr(user, 'profile') and user.profile.role == 'teacher'
