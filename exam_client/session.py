"""
Exam Session
Client-side cache of one exam attempt.

Reconciliation policy: the server wins on read (``load`` takes the server's
remaining_seconds and saved answers), the client wins on write (periodic
flushes send the locally computed time_spent, saves send the local answers).
"""
import logging
import time
from datetime import datetime, timezone
from enum import Enum

from exam_client.exceptions import ExamApiError, ExamSessionError

logger = logging.getLogger(__name__)

# Seconds between fire-and-forget persistence of time_spent
AUTOSAVE_INTERVAL = 15


class QuestionState(str, Enum):
    UNANSWERED = "unanswered"
    ANSWERED = "answered"
    FLAGGED = "flagged"


def _parse_timestamp(value):
    if not value:
        return None
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


def _utcnow():
    return datetime.now(timezone.utc)


class ExamSession:
    """One student's run through one exam, driven one second at a time by tick()."""

    def __init__(self, api, exam_id, autosave_interval=AUTOSAVE_INTERVAL, clock=_utcnow):
        self.api = api
        self.exam_id = exam_id
        self.autosave_interval = autosave_interval
        self.clock = clock

        self.exam = None
        self.questions = []
        self.attempt = None
        self.answers = {}
        self.flagged = set()
        self.current_index = 0
        self.time_remaining = 0
        self.result = None
        self.persist_failures = 0

        self._base_time_spent = 0
        self._elapsed = 0
        self._since_persist = 0
        self._submitting = False
        self._auto_submitted = False

    # ========================================
    # LOADING / TIMER RECONCILIATION
    # ========================================

    def load(self):
        """Fetch the exam, then create or resume the attempt and restore its state."""
        exam_data = self.api.fetch_exam(self.exam_id)
        self.exam = exam_data['exam']
        self.questions = exam_data.get('questions', [])

        started = self.api.start_attempt(self.exam_id)
        self.attempt = started['attempt']
        self.answers = {
            item['question_id']: item['answer']
            for item in self.attempt.get('answers') or []
        }
        self.flagged = set(self.attempt.get('flagged_questions') or [])
        self._base_time_spent = self.attempt.get('time_spent') or 0
        self._elapsed = 0
        self._since_persist = 0

        if self.timed:
            self.time_remaining = self.reconcile_remaining(started.get('remaining_seconds'))
        logger.info(
            f"Exam {self.exam_id} loaded: attempt={self.attempt['id']} "
            f"resumed={started.get('resumed', False)} remaining={self.time_remaining if self.timed else None}"
        )
        return self

    def reconcile_remaining(self, server_remaining=None):
        """
        Server-computed remaining seconds are authoritative. Without them, fall
        back to duration minus (stored time_spent + time since started_at).
        """
        if isinstance(server_remaining, (int, float)) and not isinstance(server_remaining, bool):
            return max(0, int(server_remaining))

        total = self.total_seconds
        started_at = _parse_timestamp(self.attempt.get('started_at'))
        since_start = 0
        if started_at is not None:
            since_start = max(0, int((self.clock() - started_at).total_seconds()))
        return max(0, total - (self._base_time_spent + since_start))

    @property
    def timed(self):
        return bool(self.exam and self.exam.get('time_limit'))

    @property
    def total_seconds(self):
        return int(self.exam.get('duration_minutes') or 0) * 60

    @property
    def time_spent(self):
        if self.timed:
            return max(self._base_time_spent, self.total_seconds - self.time_remaining)
        return self._base_time_spent + self._elapsed

    @property
    def completed(self):
        if self.result is not None:
            return True
        return bool(self.attempt) and self.attempt.get('status') != 'in_progress'

    # ========================================
    # TICKING
    # ========================================

    def tick(self):
        """Advance the session clock by one second."""
        if self.completed or self._submitting:
            return

        self._elapsed += 1
        if self.timed:
            if self.time_remaining > 0:
                self.time_remaining -= 1
            if self.time_remaining <= 0:
                self._auto_submit()
                return

        self._since_persist += 1
        if self._since_persist >= self.autosave_interval:
            self._since_persist = 0
            self.persist_time()

    def _auto_submit(self):
        if self._auto_submitted:
            return
        self._auto_submitted = True
        logger.info(f"Time is up for attempt {self.attempt['id']}, submitting")
        try:
            self.submit()
        except ExamApiError as exc:
            logger.error(f"Automatic submission of attempt {self.attempt['id']} failed: {exc}")

    def persist_time(self):
        """Fire-and-forget flush of time_spent; failures are logged and counted."""
        try:
            self.api.update_attempt(self.attempt['id'], time_spent=self.time_spent)
        except ExamApiError as exc:
            self.persist_failures += 1
            logger.warning(
                f"Could not persist time for attempt {self.attempt['id']} "
                f"({self.persist_failures} failures so far): {exc}"
            )

    def run(self, sleep=time.sleep, max_ticks=None):
        """Tick once per second until the attempt completes (or max_ticks elapse)."""
        ticks = 0
        while not self.completed and (max_ticks is None or ticks < max_ticks):
            sleep(1)
            self.tick()
            ticks += 1
        return self.result

    # ========================================
    # ANSWERS / FLAGS
    # ========================================

    def _ensure_open(self):
        if self.completed or self._submitting:
            raise ExamSessionError("Attempt is already submitted")

    def answer(self, question_id, value):
        """Record an answer; an empty value clears it."""
        self._ensure_open()
        if value is None or value == "" or value == []:
            self.answers.pop(question_id, None)
        else:
            self.answers[question_id] = value

    def toggle_flag(self, question_id=None):
        self._ensure_open()
        if question_id is None:
            question_id = self.current_question['id']
        if question_id in self.flagged:
            self.flagged.discard(question_id)
        else:
            self.flagged.add(question_id)
        return question_id in self.flagged

    def save_progress(self):
        """Explicit "Save Progress": answers, flags and time in one call."""
        self._ensure_open()
        data = self.api.update_attempt(
            self.attempt['id'],
            answers=self.answers,
            time_spent=self.time_spent,
            flagged=self.flagged,
        )
        self.attempt = data.get('attempt', self.attempt)
        self._since_persist = 0
        return data

    def submit(self):
        """
        Finalize the attempt. Only the first call reaches the server; later
        calls return the same result.
        """
        if self.result is not None or self._submitting:
            return self.result

        self._submitting = True
        try:
            data = self.api.submit_attempt(self.attempt['id'], self.answers, self.time_spent)
        except ExamApiError:
            self._submitting = False
            raise

        self.result = data
        self.attempt = data.get('attempt', self.attempt)
        self._submitting = False
        logger.info(f"Attempt {self.attempt['id']} submitted")
        return self.result

    # ========================================
    # NAVIGATION
    # ========================================

    @property
    def current_question(self):
        if not self.questions:
            return None
        return self.questions[self.current_index]

    def go_to(self, index):
        if not self.questions:
            self.current_index = 0
        else:
            self.current_index = min(max(int(index), 0), len(self.questions) - 1)
        return self.current_question

    def next(self):
        return self.go_to(self.current_index + 1)

    def previous(self):
        return self.go_to(self.current_index - 1)

    def question_state(self, index):
        question_id = self.questions[index]['id']
        if question_id in self.flagged:
            return QuestionState.FLAGGED
        if question_id in self.answers:
            return QuestionState.ANSWERED
        return QuestionState.UNANSWERED

    @property
    def answered_count(self):
        return sum(1 for q in self.questions if q['id'] in self.answers)
