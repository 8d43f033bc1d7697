from datetime import datetime, timedelta, timezone

import pytest
import requests
from rest_framework.test import RequestsClient

from exam_client import ExamApiClient, ExamApiError, ExamSession, ExamSessionError, QuestionState

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class StubApi:
    """In-memory stand-in for ExamApiClient."""

    def __init__(self, time_limit=True, remaining=1800, attempt=None, question_count=3):
        self.exam = {"id": 7, "title": "Stub", "duration_minutes": 30, "time_limit": time_limit}
        self.questions = [
            {"id": qid, "question_text": f"Q{qid}", "question_type": "mcq", "options": []}
            for qid in range(1, question_count + 1)
        ]
        self.attempt = attempt or {
            "id": 11, "status": "in_progress", "time_spent": 0,
            "started_at": NOW.isoformat(), "answers": [], "flagged_questions": [],
        }
        self.remaining = remaining
        self.updates = []
        self.submits = []
        self.fail_updates = False
        self.fail_submit = False

    def fetch_exam(self, exam_id):
        return {"exam": self.exam, "questions": self.questions}

    def start_attempt(self, exam_id):
        return {"attempt": self.attempt, "remaining_seconds": self.remaining, "resumed": False}

    def update_attempt(self, attempt_id, answers=None, time_spent=None, flagged=None):
        self.updates.append({"answers": answers, "time_spent": time_spent, "flagged": flagged})
        if self.fail_updates:
            raise ExamApiError(503, "Network error. Could not connect to the server.")
        return {"attempt": self.attempt}

    def submit_attempt(self, attempt_id, answers, time_spent):
        self.submits.append({"answers": dict(answers), "time_spent": time_spent})
        if self.fail_submit:
            raise ExamApiError(500, "An internal error occurred.")
        return {"attempt": dict(self.attempt, status="completed"), "already_submitted": False}


def _session(api, **kwargs):
    return ExamSession(api, 7, clock=lambda: NOW, **kwargs).load()


# --- Countdown ---

def test_countdown_auto_submits_exactly_once():
    api = StubApi(remaining=3)
    session = _session(api)

    for _ in range(3):
        session.tick()

    assert session.time_remaining == 0
    assert session.completed
    assert len(api.submits) == 1
    assert api.submits[0]["time_spent"] == 1800

    for _ in range(5):
        session.tick()
    assert len(api.submits) == 1


def test_failed_auto_submit_is_not_retried(caplog):
    api = StubApi(remaining=1)
    api.fail_submit = True
    session = _session(api)

    session.tick()
    session.tick()

    assert len(api.submits) == 1
    assert session.result is None
    assert "Automatic submission of attempt 11 failed" in caplog.text


def test_untimed_session_never_auto_submits():
    api = StubApi(time_limit=False, remaining=None)
    session = _session(api)

    for _ in range(100):
        session.tick()

    assert api.submits == []
    assert session.time_spent == 100
    assert [u["time_spent"] for u in api.updates] == [15, 30, 45, 60, 75, 90]


def test_time_is_persisted_every_interval():
    api = StubApi()
    session = _session(api)

    for _ in range(31):
        session.tick()

    assert [u["time_spent"] for u in api.updates] == [15, 30]
    assert all(u["answers"] is None for u in api.updates)


def test_persistence_failures_are_counted_not_raised():
    api = StubApi()
    api.fail_updates = True
    session = _session(api, autosave_interval=5)

    for _ in range(10):
        session.tick()

    assert session.persist_failures == 2
    assert session.time_remaining == 1790


def test_run_stops_after_max_ticks():
    api = StubApi()
    session = _session(api)
    sleeps = []

    session.run(sleep=sleeps.append, max_ticks=4)

    assert sleeps == [1, 1, 1, 1]
    assert session.time_remaining == 1796


# --- Timer reconciliation ---

def test_server_remaining_wins():
    api = StubApi(remaining=1234)
    session = _session(api)

    assert session.time_remaining == 1234
    assert session.reconcile_remaining(-5) == 0


def test_fallback_uses_stored_time_and_start_timestamp():
    attempt = {
        "id": 11, "status": "in_progress", "time_spent": 50,
        "started_at": (NOW - timedelta(seconds=100)).isoformat().replace("+00:00", "Z"),
        "answers": [], "flagged_questions": [],
    }
    session = _session(StubApi(remaining=None, attempt=attempt))

    assert session.time_remaining == 1800 - (50 + 100)


def test_expired_attempt_submits_on_first_tick():
    attempt = {
        "id": 11, "status": "in_progress", "time_spent": 0,
        "started_at": (NOW - timedelta(hours=1)).isoformat(),
        "answers": [], "flagged_questions": [],
    }
    api = StubApi(remaining=None, attempt=attempt)
    session = _session(api)

    assert session.time_remaining == 0
    session.tick()
    assert len(api.submits) == 1


def test_load_restores_answers_and_flags():
    attempt = {
        "id": 11, "status": "in_progress", "time_spent": 30, "started_at": NOW.isoformat(),
        "answers": [{"question_id": 1, "answer": "4"}], "flagged_questions": [2],
    }
    session = _session(StubApi(remaining=1770, attempt=attempt))

    assert session.answers == {1: "4"}
    assert session.flagged == {2}
    assert session.time_spent == 30


# --- Answers and navigation ---

def test_navigation_is_clamped():
    session = _session(StubApi())

    assert session.previous()["id"] == 1
    assert session.next()["id"] == 2
    assert session.go_to(10)["id"] == 3
    assert session.next()["id"] == 3
    assert session.go_to(-4)["id"] == 1


def test_question_states():
    session = _session(StubApi())
    session.answer(1, "a")
    session.toggle_flag(2)
    session.go_to(0)

    assert session.question_state(0) == QuestionState.ANSWERED
    assert session.question_state(1) == QuestionState.FLAGGED
    assert session.question_state(2) == QuestionState.UNANSWERED

    assert session.toggle_flag() is True
    assert session.question_state(0) == QuestionState.FLAGGED
    assert session.answered_count == 1


def test_empty_answer_clears_selection():
    session = _session(StubApi())
    session.answer(1, ["3", "4"])
    session.answer(1, [])

    assert session.answers == {}


def test_save_progress_sends_answers_flags_and_time():
    api = StubApi()
    session = _session(api)
    session.answer(2, "x")
    session.toggle_flag(3)

    session.save_progress()

    assert api.updates == [{"answers": {2: "x"}, "time_spent": 0, "flagged": {3}}]


def test_submit_is_guarded():
    api = StubApi()
    session = _session(api)
    session.answer(1, "a")

    first = session.submit()
    second = session.submit()

    assert first is second
    assert len(api.submits) == 1
    with pytest.raises(ExamSessionError):
        session.answer(2, "b")
    with pytest.raises(ExamSessionError):
        session.toggle_flag(2)


def test_failed_submit_can_be_retried():
    api = StubApi()
    api.fail_submit = True
    session = _session(api)

    with pytest.raises(ExamApiError):
        session.submit()

    api.fail_submit = False
    assert session.submit()["attempt"]["status"] == "completed"
    assert len(api.submits) == 2


# --- HTTP client ---

class _TimeoutSession(requests.Session):
    def request(self, *args, **kwargs):
        raise requests.exceptions.Timeout()


class _OfflineSession(requests.Session):
    def request(self, *args, **kwargs):
        raise requests.exceptions.ConnectionError()


def test_transport_errors_map_to_api_errors():
    with pytest.raises(ExamApiError) as excinfo:
        ExamApiClient("http://lms.invalid", session=_TimeoutSession()).fetch_exam(1)
    assert excinfo.value.status_code == 504

    with pytest.raises(ExamApiError) as excinfo:
        ExamApiClient("http://lms.invalid", session=_OfflineSession()).fetch_exam(1)
    assert excinfo.value.status_code == 503


def test_token_sets_bearer_header():
    client = ExamApiClient("http://lms.invalid/", token="abc")

    assert client.base_url == "http://lms.invalid"
    assert client.session.headers["Authorization"] == "Bearer abc"


# --- Against the real API ---

@pytest.fixture
def live_api(db):
    return ExamApiClient("http://testserver", session=RequestsClient())


@pytest.mark.django_db
def test_full_run_against_api(live_api, student, exam):
    live_api.login(student.email, "s3cret-pass")
    session = ExamSession(live_api, exam.id).load()

    assert 1798 <= session.time_remaining <= 1800
    question = session.current_question
    correct = next(opt for opt in question["options"] if opt["text"] == "B")
    session.answer(question["id"], str(correct["id"]))
    session.toggle_flag()
    session.save_progress()

    resumed = ExamSession(live_api, exam.id).load()
    assert resumed.attempt["id"] == session.attempt["id"]
    assert resumed.answers == {question["id"]: str(correct["id"])}
    assert resumed.flagged == {question["id"]}

    result = session.submit()
    assert result["attempt"]["status"] == "completed"
    assert result["score"]["passed"] is True
    assert result["score"]["percentage"] == 100


@pytest.mark.django_db
def test_timeout_submission_against_api(live_api, student, exam):
    live_api.login(student.email, "s3cret-pass")
    session = ExamSession(live_api, exam.id).load()
    session.time_remaining = 1

    session.tick()

    assert session.completed
    assert session.result["attempt"]["time_spent"] == 1800
    assert session.result["attempt"]["score"] == 0
    assert session.result["attempt"]["passed"] is False


@pytest.mark.django_db
def test_api_errors_surface_envelope_message(live_api, student, make_exam):
    draft = make_exam(is_published=False)
    live_api.login(student.email, "s3cret-pass")

    with pytest.raises(ExamApiError) as excinfo:
        live_api.fetch_exam(draft.id)

    assert excinfo.value.status_code == 400
    assert excinfo.value.message == "Exam is not available"


@pytest.mark.django_db
def test_bad_login_raises(live_api, student):
    with pytest.raises(ExamApiError) as excinfo:
        live_api.login(student.email, "wrong-password")

    assert excinfo.value.status_code == 401
    assert "Authorization" not in live_api.session.headers
