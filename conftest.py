import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from exams.models import Exam, Question, Option
from users.models import User


def _make_user(email, role=User.Role.STUDENT, **extra):
    return User.objects.create_user(
        username=email,
        email=email,
        password="s3cret-pass",
        first_name="Test",
        last_name="User",
        role=role,
        **extra,
    )


@pytest.fixture
def student(db):
    return _make_user("student@example.com")


@pytest.fixture
def other_student(db):
    return _make_user("other@example.com")


@pytest.fixture
def instructor(db):
    return _make_user("instructor@example.com", role=User.Role.INSTRUCTOR)


@pytest.fixture
def other_instructor(db):
    return _make_user("other.instructor@example.com", role=User.Role.INSTRUCTOR)


@pytest.fixture
def admin(db):
    return _make_user("admin@example.com", role=User.Role.ADMIN)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def auth_client():
    """Factory: an APIClient carrying a Bearer token for the given user."""
    def make(user):
        client = APIClient()
        token = RefreshToken.for_user(user).access_token
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        return client
    return make


@pytest.fixture
def student_client(auth_client, student):
    return auth_client(student)


@pytest.fixture
def make_exam(db, instructor):
    """
    Factory for a published 30 minute exam worth 10 marks (6 to pass) with a
    single MCQ whose correct option is "B".
    """
    def make(**overrides):
        fields = dict(
            title="Algebra Basics",
            duration_minutes=30,
            total_marks=10,
            passing_marks=6,
            is_published=True,
            is_active=True,
            time_limit=True,
            created_by=instructor,
        )
        fields.update(overrides)
        exam = Exam.objects.create(**fields)
        question = Question.objects.create(
            exam=exam, order=0, text="2 + 2 = ?", question_type=Question.QuestionType.MCQ, marks=10
        )
        for text, is_correct in (("A", False), ("B", True), ("C", False), ("D", False)):
            Option.objects.create(question=question, text=text, is_correct=is_correct)
        return exam
    return make


@pytest.fixture
def exam(make_exam):
    return make_exam()
