from django.core.exceptions import ValidationError

from .models import Question

MAX_MCQ_OPTIONS = 6


def validate_question_options(question_type, options, correct_answer=""):
    """
    Enforce the per-type option rules.

    ``options`` is a list of dicts with ``text`` and ``is_correct`` keys.
    """
    options = options or []
    correct = [opt for opt in options if opt.get('is_correct')]

    if question_type == Question.QuestionType.MCQ:
        if len(options) < 2:
            raise ValidationError("MCQ questions must have at least 2 options")
        if len(options) > MAX_MCQ_OPTIONS:
            raise ValidationError(f"MCQ questions cannot have more than {MAX_MCQ_OPTIONS} options")
        if not correct:
            raise ValidationError("MCQ questions must have at least one correct option")

    elif question_type == Question.QuestionType.TRUE_FALSE:
        if len(options) != 2:
            raise ValidationError("True/False questions must have exactly 2 options")
        if len(correct) != 1:
            raise ValidationError("True/False questions must have exactly one correct option")

    elif question_type in (Question.QuestionType.WRITTEN, Question.QuestionType.ESSAY,
                           Question.QuestionType.FILL_BLANK):
        if not (correct_answer or "").strip():
            raise ValidationError(f"{Question.QuestionType(question_type).label} questions must have a correct answer")
