"""
Domain errors raised by the attempt engine and rendered by the API layer
"""
from typing import Any, Dict, List, Optional


class QuizEngineError(Exception):
    """Base class for errors surfaced to API callers"""

    status_code = 400
    error = "quiz_engine_error"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        content = {
            "error": self.error,
            "message": self.message,
            "status_code": self.status_code,
        }
        if self.details is not None:
            content["details"] = self.details
        return content


class NotFound(QuizEngineError):
    status_code = 404
    error = "not_found"


class NotAssigned(QuizEngineError):
    status_code = 403
    error = "not_assigned"


class OutsideWindow(QuizEngineError):
    status_code = 400
    error = "outside_window"


class QuizUnavailable(QuizEngineError):
    status_code = 400
    error = "quiz_unavailable"


class AlreadyAttempted(QuizEngineError):
    status_code = 409
    error = "already_attempted"


class NotInProgress(QuizEngineError):
    status_code = 409
    error = "not_in_progress"


class AttemptExpired(QuizEngineError):
    status_code = 410
    error = "attempt_expired"


class QuestionNotInQuiz(QuizEngineError):
    status_code = 400
    error = "question_not_in_quiz"


class InvalidOption(QuizEngineError):
    status_code = 400
    error = "invalid_option"


class AlreadyTerminal(QuizEngineError):
    status_code = 409
    error = "already_terminal"


class QuizHasAttempts(QuizEngineError):
    status_code = 409
    error = "quiz_has_attempts"


class QuizLocked(QuizEngineError):
    status_code = 409
    error = "quiz_locked"


class DuplicateUser(QuizEngineError):
    status_code = 409
    error = "duplicate_user"


class ValidationFailed(QuizEngineError):
    status_code = 422
    error = "validation_failed"

    def __init__(self, issues: List[Dict[str, str]], message: str = "Validation failed"):
        super().__init__(message, details=issues)
        self.issues = issues


class MalformedAttempt(QuizEngineError):
    """Answer set references questions outside the quiz key (data integrity bug)"""

    status_code = 500
    error = "malformed_attempt"
