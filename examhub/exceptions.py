"""
Typed errors raised by the grading and review engine.

Every error carries an HTTP status and a machine-readable code so the API
layer can surface it without inspecting messages.
"""


class EngineError(Exception):
    status_code = 400
    default_detail = "The request could not be processed."
    default_code = "error"

    def __init__(self, detail=None, code=None):
        self.detail = detail or self.default_detail
        self.code = code or self.default_code
        super().__init__(self.detail)

    def as_dict(self):
        return {"detail": self.detail, "code": self.code}


class ValidationError(EngineError):
    status_code = 400
    default_detail = "Invalid input."
    default_code = "invalid"


class AnswerValidationError(ValidationError):
    INVALID_OPTION = "invalid_option"
    INVALID_BOOLEAN = "invalid_boolean"
    EMPTY_ANSWER = "empty_answer"
    UNSUPPORTED_TYPE = "unsupported_question_type"

    default_detail = "Invalid answer."
    default_code = "invalid_answer"


class DuplicateAnswer(ValidationError):
    default_detail = "This question has already been answered in this attempt."
    default_code = "duplicate_answer"


class AttemptClosed(ValidationError):
    default_detail = "This attempt is already completed."
    default_code = "attempt_closed"


class ExamNotOpen(ValidationError):
    default_detail = "This exam is not accepting new attempts."
    default_code = "exam_not_open"


class QuestionMismatch(ValidationError):
    default_detail = "Invalid question for this attempt."
    default_code = "question_mismatch"


class QuestionInUse(ValidationError):
    default_detail = "This question is being answered and cannot change how it is scored."
    default_code = "question_in_use"


class ReviewNotAllowed(EngineError):
    NOT_ESSAY = "not_essay"
    REVIEW_DISABLED = "review_disabled"
    ATTEMPT_NOT_COMPLETED = "attempt_not_completed"
    ALREADY_REQUESTED = "already_requested"
    NOT_REQUESTED = "review_not_requested"
    ALREADY_REVIEWED = "already_reviewed"
    INVALID_TRANSITION = "invalid_transition"

    status_code = 400
    default_detail = "Review is not allowed for this answer."
    default_code = "review_not_allowed"

    def __init__(self, detail=None, code=None):
        super().__init__(detail, code)
        # Reviewed is terminal: a second decision conflicts with the stored one.
        if self.code == self.ALREADY_REVIEWED:
            self.status_code = 409


class Forbidden(EngineError):
    status_code = 403
    default_detail = "You do not have permission to perform this action."
    default_code = "forbidden"


class NotFound(EngineError):
    status_code = 404
    default_detail = "Not found."
    default_code = "not_found"


class InvariantViolation(EngineError):
    status_code = 500
    default_detail = "Score invariant violated; the operation was rejected."
    default_code = "invariant_violation"
