"""
Exam Client
Drives the exam-taking flow against the LMS HTTP API: loads the exam,
resumes or starts the attempt, keeps the countdown and autosaves progress.
"""
from exam_client.api import ExamApiClient
from exam_client.exceptions import ExamApiError, ExamSessionError
from exam_client.session import ExamSession, QuestionState

__all__ = ['ExamApiClient', 'ExamApiError', 'ExamSessionError', 'ExamSession', 'QuestionState']
