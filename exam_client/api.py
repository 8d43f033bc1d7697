import logging

import requests

from exam_client.exceptions import ExamApiError

logger = logging.getLogger(__name__)

# Timeout is crucial to prevent the client hanging on a slow server
DEFAULT_TIMEOUT = 20


class ExamApiClient:
    """Thin wrapper over the student exam endpoints; unwraps the response envelope."""

    def __init__(self, base_url, token=None, session=None, timeout=DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.timeout = timeout
        if token:
            self.set_token(token)

    def set_token(self, token):
        self.session.headers['Authorization'] = f"Bearer {token}"

    def _request(self, method, path, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout:
            raise ExamApiError(504, "Request timed out. The server is slow right now.")
        except requests.exceptions.ConnectionError:
            raise ExamApiError(503, "Network error. Could not connect to the server.")

        try:
            body = resp.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}

        if not resp.ok or not body.get('success', False):
            message = body.get('error') or f"Request failed with status {resp.status_code}"
            logger.debug(f"{method} {path} failed: {resp.status_code} {message}")
            raise ExamApiError(resp.status_code, message)
        return body.get('data') or {}

    def login(self, email, password):
        data = self._request('POST', '/api/auth/login/', json={'email': email, 'password': password})
        self.set_token(data['access'])
        return data

    def fetch_exam(self, exam_id):
        """{ "exam": {...}, "questions": [...] }"""
        return self._request('GET', f'/api/student/exams/{exam_id}/')

    def start_attempt(self, exam_id):
        """{ "attempt": {...}, "remaining_seconds": int | None, "resumed": bool }"""
        return self._request('POST', '/api/student/exam-attempts/', json={'exam_id': exam_id})

    def get_attempt(self, attempt_id):
        return self._request('GET', f'/api/student/exam-attempts/{attempt_id}/')

    def update_attempt(self, attempt_id, answers=None, time_spent=None, flagged=None):
        payload = {}
        if answers is not None:
            payload['answers'] = _answer_list(answers)
        if time_spent is not None:
            payload['time_spent'] = int(time_spent)
        if flagged is not None:
            payload['flagged_questions'] = sorted(flagged)
        return self._request('PUT', f'/api/student/exam-attempts/{attempt_id}/', json=payload)

    def submit_attempt(self, attempt_id, answers, time_spent):
        payload = {'answers': _answer_list(answers), 'time_spent': int(time_spent)}
        return self._request('POST', f'/api/student/exam-attempts/{attempt_id}/submit/', json=payload)


def _answer_list(answers):
    return [{'question_id': qid, 'answer': answer} for qid, answer in answers.items()]
