"""
Scoring Service
Grades submitted answers per question type and derives the attempt result.
"""
from decimal import Decimal, ROUND_HALF_UP

from exams.models import Question

TWO_PLACES = Decimal("0.01")


def _normalize(value):
    return str(value).strip().lower()


def _as_list(response):
    if response is None:
        return []
    if isinstance(response, (list, tuple)):
        return [str(item).strip() for item in response if str(item).strip()]
    text = str(response).strip()
    return [text] if text else []


class ScoringService:
    """Service for scoring answers"""

    @staticmethod
    def check_answer(question, response, options=None):
        """
        Decide correctness of one response.

        Returns True/False for auto-graded types and None for types that need
        manual review (written, essay).
        """
        if not question.is_auto_graded:
            return None

        selected = _as_list(response)
        if not selected:
            return False

        options = list(question.options.all()) if options is None else options

        if question.question_type == Question.QuestionType.MCQ:
            correct_ids = {str(opt.id) for opt in options if opt.is_correct}
            return set(selected) == correct_ids

        if question.question_type == Question.QuestionType.TRUE_FALSE:
            if len(selected) != 1:
                return False
            correct = next((opt for opt in options if opt.is_correct), None)
            if correct is None:
                return False
            answer = selected[0]
            return answer == str(correct.id) or _normalize(answer) == _normalize(correct.text)

        if question.question_type == Question.QuestionType.FILL_BLANK:
            expected = _normalize(question.correct_answer)
            return bool(expected) and len(selected) == 1 and _normalize(selected[0]) == expected

        return False

    @staticmethod
    def grade(question, response):
        """Return (is_correct, awarded_marks) for one question."""
        is_correct = ScoringService.check_answer(question, response)
        marks = Decimal(question.marks) if is_correct else Decimal(0)
        return is_correct, marks

    @staticmethod
    def summarize(exam, score):
        """Percentage against total_marks and pass/fail against passing_marks."""
        score = Decimal(score)
        if exam.total_marks:
            percentage = min(Decimal(100), score / Decimal(exam.total_marks) * 100)
            percentage = percentage.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
        else:
            percentage = Decimal(0).quantize(TWO_PLACES)
        passed = score >= Decimal(exam.passing_marks)
        return percentage, passed
