# exams/models.py
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone


class Exam(models.Model):
    class ExamType(models.TextChoices):
        MCQ = "mcq", "Multiple Choice"
        WRITTEN = "written", "Written"
        MIXED = "mixed", "Mixed"

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    instructions = models.TextField(blank=True)
    exam_type = models.CharField(max_length=20, choices=ExamType.choices, default=ExamType.MCQ)

    duration_minutes = models.PositiveIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(1440)]
    )
    total_marks = models.PositiveIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(10000)]
    )
    passing_marks = models.PositiveIntegerField(default=0)

    # Maximum attempts a student may start, in_progress and terminal ones alike
    max_attempts = models.PositiveIntegerField(
        default=1, validators=[MinValueValidator(1), MaxValueValidator(10)]
    )

    shuffle_questions = models.BooleanField(default=False)
    shuffle_options = models.BooleanField(default=False)
    show_results = models.BooleanField(default=True)
    show_correct_answers = models.BooleanField(default=True)
    # Whether duration is enforced with a countdown
    time_limit = models.BooleanField(default=True)

    # Optional publication window
    start_date = models.DateTimeField(null=True, blank=True)
    end_date = models.DateTimeField(null=True, blank=True)

    is_active = models.BooleanField(default=True)
    is_published = models.BooleanField(default=False)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='authored_exams'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['is_active', 'is_published'], name='exam_active_published_idx'),
            models.Index(fields=['start_date', 'end_date'], name='exam_window_idx'),
        ]

    def __str__(self):
        return self.title

    def clean(self):
        if self.total_marks is not None and self.passing_marks is not None and self.passing_marks > self.total_marks:
            raise ValidationError({'passing_marks': 'Passing marks cannot exceed total marks'})
        if self.start_date and self.end_date and self.start_date >= self.end_date:
            raise ValidationError({'end_date': 'End date must be after start date'})

    @property
    def duration_seconds(self):
        return self.duration_minutes * 60

    @property
    def question_count(self):
        return self.questions.count()

    @property
    def status(self):
        now = timezone.now()
        if not self.is_published:
            return "draft"
        if not self.is_active:
            return "inactive"
        if self.start_date and now < self.start_date:
            return "scheduled"
        if self.end_date and now > self.end_date:
            return "expired"
        if self.start_date and self.end_date:
            return "active"
        return "published"

    def availability_error(self, now=None):
        """Reason a student cannot open this exam right now, or None."""
        now = now or timezone.now()
        if not self.is_published or not self.is_active:
            return "Exam is not available"
        if self.start_date and now < self.start_date:
            return "Exam has not started yet"
        if self.end_date and now > self.end_date:
            return "Exam has expired"
        return None


class Question(models.Model):
    class QuestionType(models.TextChoices):
        MCQ = "mcq", "Multiple Choice"
        WRITTEN = "written", "Written"
        TRUE_FALSE = "true_false", "True / False"
        FILL_BLANK = "fill_blank", "Fill in the Blank"
        ESSAY = "essay", "Essay"

    class Difficulty(models.TextChoices):
        EASY = "easy", "Easy"
        MEDIUM = "medium", "Medium"
        HARD = "hard", "Hard"

    # Types whose correctness is decided by exact match, without human review
    AUTO_GRADED_TYPES = (QuestionType.MCQ, QuestionType.TRUE_FALSE, QuestionType.FILL_BLANK)
    OPTION_TYPES = (QuestionType.MCQ, QuestionType.TRUE_FALSE)

    # Nullable Exam: Allows questions to sit in the "Bank" without being assigned
    exam = models.ForeignKey(Exam, related_name='questions', on_delete=models.SET_NULL, null=True, blank=True)
    order = models.PositiveIntegerField(default=0)

    text = models.TextField()
    question_type = models.CharField(max_length=20, choices=QuestionType.choices, default=QuestionType.MCQ)

    # Metadata for the Bank
    category = models.CharField(max_length=100, blank=True)
    tags = models.JSONField(default=list, blank=True)
    difficulty = models.CharField(max_length=20, choices=Difficulty.choices, default=Difficulty.MEDIUM)
    marks = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1), MaxValueValidator(100)])
    time_limit_minutes = models.PositiveIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1), MaxValueValidator(60)]
    )

    # Reference answer for written/essay, exact answer for fill_blank
    correct_answer = models.TextField(blank=True)
    explanation = models.TextField(blank=True)
    hints = models.JSONField(default=list, blank=True)

    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='authored_questions'
    )

    class Meta:
        ordering = ['order', 'id']

    def __str__(self):
        return f"{self.text[:50]}..."

    @property
    def is_auto_graded(self):
        return self.question_type in self.AUTO_GRADED_TYPES


class Option(models.Model):
    question = models.ForeignKey(Question, related_name='options', on_delete=models.CASCADE)
    text = models.CharField(max_length=500)
    is_correct = models.BooleanField(default=False)
    explanation = models.TextField(blank=True)

    class Meta:
        ordering = ['id']

    def __str__(self):
        return self.text
