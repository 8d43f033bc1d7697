from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from exams.models import Exam, Question, Option

User = get_user_model()

SAMPLE_QUESTIONS = [
    {
        "text": "Which planet is known as the Red Planet?",
        "question_type": Question.QuestionType.MCQ,
        "marks": 4,
        "options": [("Venus", False), ("Mars", True), ("Jupiter", False), ("Mercury", False)],
    },
    {
        "text": "Light travels faster than sound.",
        "question_type": Question.QuestionType.TRUE_FALSE,
        "marks": 2,
        "options": [("True", True), ("False", False)],
    },
    {
        "text": "Water boils at ___ degrees Celsius at sea level.",
        "question_type": Question.QuestionType.FILL_BLANK,
        "marks": 2,
        "correct_answer": "100",
    },
    {
        "text": "Explain in a few sentences why the sky appears blue.",
        "question_type": Question.QuestionType.ESSAY,
        "marks": 2,
        "correct_answer": "Rayleigh scattering of shorter wavelengths by air molecules.",
    },
]


class Command(BaseCommand):
    help = 'Creates a published sample exam with one question of each auto-graded type plus an essay'

    def add_arguments(self, parser):
        parser.add_argument('--title', type=str, default='Sample Science Exam', help='Exam title')
        parser.add_argument('--duration', type=int, default=30, help='Duration in minutes')
        parser.add_argument('--author', type=str, default=None, help='Email of the authoring instructor')

    @transaction.atomic
    def handle(self, *args, **options):
        author = None
        if options['author']:
            author = User.objects.filter(email=options['author']).first()
            if author is None:
                self.stdout.write(self.style.ERROR(f"User {options['author']} not found!"))
                return

        exam = Exam.objects.create(
            title=options['title'],
            description='Generated sample exam',
            exam_type=Exam.ExamType.MIXED,
            duration_minutes=options['duration'],
            total_marks=sum(q['marks'] for q in SAMPLE_QUESTIONS),
            passing_marks=6,
            is_published=True,
            is_active=True,
            created_by=author,
        )

        for order, item in enumerate(SAMPLE_QUESTIONS):
            question = Question.objects.create(
                exam=exam,
                order=order,
                text=item['text'],
                question_type=item['question_type'],
                marks=item['marks'],
                correct_answer=item.get('correct_answer', ''),
                created_by=author,
            )
            for text, is_correct in item.get('options', []):
                Option.objects.create(question=question, text=text, is_correct=is_correct)

        self.stdout.write(self.style.SUCCESS(
            f"Created exam {exam.id} '{exam.title}' with {len(SAMPLE_QUESTIONS)} questions"
        ))
