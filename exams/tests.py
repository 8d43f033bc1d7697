from datetime import timedelta
from io import StringIO

import pytest
from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.utils import timezone

from assessments.models import ExamAttempt
from assessments.services import AttemptService
from exams.models import Exam, Question, Option
from exams.validators import validate_question_options

pytestmark = pytest.mark.django_db


def _options(count, correct=(0,)):
    return [{"text": f"Option {i}", "is_correct": i in correct} for i in range(count)]


# --- Question rules ---

@pytest.mark.parametrize("question_type, options, correct_answer, message", [
    ("mcq", _options(1), "", "at least 2 options"),
    ("mcq", _options(7), "", "more than 6 options"),
    ("mcq", _options(4, correct=()), "", "at least one correct option"),
    ("true_false", _options(3), "", "exactly 2 options"),
    ("true_false", _options(2, correct=(0, 1)), "", "exactly one correct option"),
    ("fill_blank", [], "   ", "must have a correct answer"),
    ("essay", [], "", "must have a correct answer"),
])
def test_invalid_question_shapes_rejected(question_type, options, correct_answer, message):
    with pytest.raises(ValidationError) as excinfo:
        validate_question_options(question_type, options, correct_answer)
    assert message in excinfo.value.messages[0]


def test_valid_question_shapes_accepted():
    validate_question_options("mcq", _options(4, correct=(1, 2)))
    validate_question_options("true_false", _options(2))
    validate_question_options("written", [], "A reference answer")


def test_instructor_creates_question_with_options(auth_client, instructor, exam):
    payload = {
        "exam": exam.id,
        "question_text": "Pick the prime",
        "question_type": "mcq",
        "marks": 2,
        "options": [
            {"text": "4", "is_correct": False},
            {"text": "7", "is_correct": True},
            {"text": "9", "is_correct": False},
        ],
    }
    resp = auth_client(instructor).post("/api/questions/", payload, format="json")

    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["question_text"] == "Pick the prime"
    assert len(data["options"]) == 3
    question = Question.objects.get(pk=data["id"])
    assert question.created_by == instructor
    assert question.options.filter(is_correct=True).count() == 1


def test_question_without_correct_option_is_400(auth_client, instructor):
    payload = {
        "question_text": "Pick one",
        "question_type": "mcq",
        "options": [{"text": "a", "is_correct": False}, {"text": "b", "is_correct": False}],
    }
    resp = auth_client(instructor).post("/api/questions/", payload, format="json")

    assert resp.status_code == 400
    assert resp.json()["error"] == "MCQ questions must have at least one correct option"


def test_students_cannot_author(student_client):
    resp = student_client.get("/api/exams/")

    assert resp.status_code == 401
    assert resp.json() == {"success": False, "error": "Instructor or admin access required"}


def test_exam_passing_marks_cannot_exceed_total(auth_client, instructor):
    payload = {"title": "Bad", "duration_minutes": 10, "total_marks": 5, "passing_marks": 8}
    resp = auth_client(instructor).post("/api/exams/", payload, format="json")

    assert resp.status_code == 400
    assert resp.json()["error"] == "passing_marks: Passing marks cannot exceed total marks"


def test_assign_and_remove_questions(auth_client, instructor, exam):
    bank_question = Question.objects.create(
        text="From the bank", question_type="written", correct_answer="x", created_by=instructor
    )
    client = auth_client(instructor)

    resp = client.post(f"/api/exams/{exam.id}/assign-questions/", {"question_ids": [bank_question.id]}, format="json")
    assert resp.status_code == 200
    assert resp.json()["data"]["assigned"] == 1
    bank_question.refresh_from_db()
    assert bank_question.exam == exam
    assert bank_question.order == 1

    resp = client.post(f"/api/exams/{exam.id}/remove-questions/", {"question_ids": [bank_question.id]}, format="json")
    assert resp.json()["data"]["removed"] == 1
    bank_question.refresh_from_db()
    assert bank_question.exam is None


def test_assign_questions_requires_list(auth_client, instructor, exam):
    resp = auth_client(instructor).post(f"/api/exams/{exam.id}/assign-questions/", {"question_ids": 3}, format="json")

    assert resp.status_code == 400
    assert resp.json()["error"] == "question_ids must be a list"


# --- Ownership ---

def test_other_instructor_cannot_touch_exam(auth_client, other_instructor, exam):
    client = auth_client(other_instructor)
    url = f"/api/exams/{exam.id}/"

    assert client.get(url).status_code == 404
    assert client.patch(url, {"title": "Hijacked"}, format="json").status_code == 404
    assert client.delete(url).status_code == 404
    assert client.post(f"{url}assign-questions/", {"question_ids": []}, format="json").status_code == 404

    exam.refresh_from_db()
    assert exam.title == "Algebra Basics"
    assert exam.id not in [item["id"] for item in client.get("/api/exams/").json()["data"]]


def test_other_instructor_cannot_see_or_assign_foreign_questions(auth_client, instructor, other_instructor, exam):
    foreign = exam.questions.get()
    own_exam = Exam.objects.create(title="Mine", duration_minutes=10, total_marks=5, created_by=other_instructor)
    client = auth_client(other_instructor)

    assert client.get("/api/questions/").json()["data"] == []
    assert client.get(f"/api/questions/{foreign.id}/").status_code == 404

    resp = client.post(f"/api/exams/{own_exam.id}/assign-questions/", {"question_ids": [foreign.id]}, format="json")
    assert resp.json()["data"]["assigned"] == 0
    foreign.refresh_from_db()
    assert foreign.exam == exam


def test_question_cannot_target_foreign_exam(auth_client, other_instructor, exam):
    payload = {"exam": exam.id, "question_text": "Sneaky", "question_type": "written", "correct_answer": "x"}
    resp = auth_client(other_instructor).post("/api/questions/", payload, format="json")

    assert resp.status_code == 400
    assert resp.json()["error"] == "exam: You can only add questions to your own exams."


def test_admin_manages_every_exam(auth_client, admin, exam):
    client = auth_client(admin)

    assert client.get(f"/api/exams/{exam.id}/").status_code == 200
    resp = client.patch(f"/api/exams/{exam.id}/", {"title": "Renamed"}, format="json")
    assert resp.status_code == 200
    assert resp.json()["data"]["title"] == "Renamed"


# --- Editing options ---

def _option_payload(question, **text_overrides):
    return [
        {"id": opt.id, "text": text_overrides.get(opt.text, opt.text), "is_correct": opt.is_correct}
        for opt in question.options.order_by('id')
    ]


def test_option_edits_keep_ids_for_running_attempts(auth_client, instructor, student, exam):
    question = exam.questions.get()
    correct = question.options.get(is_correct=True)
    attempt, _ = AttemptService.start_or_resume(student, exam)
    AttemptService.save_progress(attempt, answers={question.id: str(correct.id)})

    resp = auth_client(instructor).patch(
        f"/api/questions/{question.id}/", {"options": _option_payload(question, B="Four")}, format="json"
    )

    assert resp.status_code == 200
    assert sorted(opt["id"] for opt in resp.json()["data"]["options"]) == sorted(
        question.options.values_list('id', flat=True)
    )
    correct.refresh_from_db()
    assert correct.text == "Four"
    finished, _ = AttemptService.finalize(attempt)
    assert finished.score == 10


def test_option_edits_add_and_remove_without_attempts(auth_client, instructor, exam):
    question = exam.questions.get()
    options = _option_payload(question)[:2] + [{"text": "E", "is_correct": False}]

    resp = auth_client(instructor).patch(f"/api/questions/{question.id}/", {"options": options}, format="json")

    assert resp.status_code == 200
    assert [opt["text"] for opt in resp.json()["data"]["options"]] == ["A", "B", "E"]
    assert question.options.count() == 3


def test_option_removal_refused_while_attempt_in_progress(auth_client, instructor, student, exam):
    question = exam.questions.get()
    ExamAttempt.objects.create(user=student, exam=exam)

    resp = auth_client(instructor).patch(
        f"/api/questions/{question.id}/", {"options": _option_payload(question)[:2]}, format="json"
    )

    assert resp.status_code == 400
    assert resp.json()["error"] == "options: Options cannot be removed while attempts on this exam are in progress."
    assert question.options.count() == 4


# --- Student exam retrieval ---

def test_student_exam_detail_hides_answers(student_client, exam):
    resp = student_client.get(f"/api/student/exams/{exam.id}/")

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["exam"]["duration_minutes"] == 30
    assert data["exam"]["question_count"] == 1
    question = data["questions"][0]
    assert "correct_answer" not in question
    assert "explanation" not in question
    assert [set(opt) for opt in question["options"]] == [{"id", "text"}] * 4


def test_student_exam_detail_shuffles_when_enabled(student_client, make_exam, monkeypatch):
    exam = make_exam(shuffle_questions=True, shuffle_options=True)
    for order in range(1, 4):
        Question.objects.create(exam=exam, order=order, text=f"Q{order}", question_type="essay", correct_answer="x")
    monkeypatch.setattr("random.shuffle", lambda items: items.reverse())

    data = student_client.get(f"/api/student/exams/{exam.id}/").json()["data"]

    assert [q["question_text"] for q in data["questions"]] == ["Q3", "Q2", "Q1", "2 + 2 = ?"]
    assert [opt["text"] for opt in data["questions"][-1]["options"]] == ["D", "C", "B", "A"]


def test_student_exam_detail_keeps_order_without_shuffle(student_client, exam):
    Question.objects.create(exam=exam, order=1, text="Second", question_type="essay", correct_answer="x")

    data = student_client.get(f"/api/student/exams/{exam.id}/").json()["data"]

    assert [q["question_text"] for q in data["questions"]] == ["2 + 2 = ?", "Second"]
    assert [opt["text"] for opt in data["questions"][0]["options"]] == ["A", "B", "C", "D"]


@pytest.mark.parametrize("overrides, message", [
    ({"is_published": False}, "Exam is not available"),
    ({"is_active": False}, "Exam is not available"),
    ({"start_date": timezone.now() + timedelta(days=1)}, "Exam has not started yet"),
    ({"end_date": timezone.now() - timedelta(days=1)}, "Exam has expired"),
])
def test_unavailable_exam_is_400(student_client, make_exam, overrides, message):
    exam = make_exam(**overrides)

    resp = student_client.get(f"/api/student/exams/{exam.id}/")

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": message}


def test_missing_exam_is_404(student_client):
    resp = student_client.get("/api/student/exams/999999/")

    assert resp.status_code == 404
    assert resp.json()["success"] is False


def test_instructor_cannot_take_exams(auth_client, instructor, exam):
    resp = auth_client(instructor).get(f"/api/student/exams/{exam.id}/")

    assert resp.status_code == 401
    assert resp.json()["error"] == "Student access required"


def test_student_exam_list_filters_unavailable_and_exhausted(student_client, student, make_exam):
    open_exam = make_exam(title="Open")
    make_exam(title="Draft", is_published=False)
    done = make_exam(title="Done")
    resumable = make_exam(title="Resumable")
    ExamAttempt.objects.create(user=student, exam=done, status=ExamAttempt.Status.COMPLETED)
    ExamAttempt.objects.create(user=student, exam=resumable)

    resp = student_client.get("/api/student/exams/")

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert {e["title"] for e in data["exams"]} == {open_exam.title, resumable.title}
    assert data["stats"]["available_exams"] == 2


# --- Sample data ---

def test_create_sample_exam_command():
    out = StringIO()
    call_command("create_sample_exam", "--duration", "45", stdout=out)

    exam = Exam.objects.get()
    assert "Created exam" in out.getvalue()
    assert exam.is_published and exam.duration_minutes == 45
    assert exam.total_marks == 10
    assert exam.questions.count() == 4
    assert Option.objects.filter(question__exam=exam).count() == 6


def test_create_sample_exam_unknown_author():
    out = StringIO()
    call_command("create_sample_exam", "--author", "ghost@example.com", stdout=out)

    assert "not found" in out.getvalue()
    assert not Exam.objects.exists()
