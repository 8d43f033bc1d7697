class ExamApiError(Exception):
    """Non-success response (or no response at all) from the LMS API."""

    def __init__(self, status_code, message):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    def __str__(self):
        return f"[{self.status_code}] {self.message}"


class ExamSessionError(Exception):
    """Action not allowed in the current state of the exam session."""
