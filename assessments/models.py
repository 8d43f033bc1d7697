# assessments/models.py
from django.db import models
from django.db.models import Q
from django.conf import settings
from django.utils import timezone

from exams.models import Exam, Question

class ExamAttempt(models.Model):
    """Tracks a student's specific attempt at an exam."""

    class Status(models.TextChoices):
        IN_PROGRESS = "in_progress", "In Progress"
        COMPLETED = "completed", "Completed"
        ABANDONED = "abandoned", "Abandoned"

    TERMINAL_STATUSES = (Status.COMPLETED, Status.ABANDONED)

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='exam_attempts')
    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name='attempts')
    attempt_number = models.PositiveIntegerField(default=1)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.IN_PROGRESS)

    started_at = models.DateTimeField(default=timezone.now, editable=False)
    completed_at = models.DateTimeField(null=True, blank=True)
    # Seconds, persisted periodically by the client
    time_spent = models.PositiveIntegerField(default=0)

    # Populated at completion
    score = models.DecimalField(max_digits=7, decimal_places=2, null=True, blank=True)
    percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    passed = models.BooleanField(null=True)
    # False while written/essay answers await manual review
    is_graded = models.BooleanField(default=False)

    flagged_questions = models.JSONField(default=list, blank=True)

    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=500, blank=True)

    class Meta:
        ordering = ['-started_at']
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'exam'],
                condition=Q(status='in_progress'),
                name='uniq_in_progress_attempt_per_student_exam',
            ),
            models.UniqueConstraint(
                fields=['user', 'exam', 'attempt_number'],
                name='uniq_attempt_number_per_student_exam',
            ),
        ]
        indexes = [
            models.Index(fields=['user', 'status'], name='attempt_user_status_idx'),
        ]

    def __str__(self):
        return f"{self.user} - {self.exam.title} #{self.attempt_number}"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES


class AttemptAnswer(models.Model):
    attempt = models.ForeignKey(ExamAttempt, related_name='answers', on_delete=models.CASCADE)
    question = models.ForeignKey(Question, on_delete=models.CASCADE)

    # Option id / "true" / free text, or a list of option ids
    response = models.JSONField(null=True, blank=True)

    # Grading, None until scored (and for manually graded types)
    is_correct = models.BooleanField(null=True)
    awarded_marks = models.DecimalField(max_digits=6, decimal_places=2, default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('attempt', 'question')

    def __str__(self):
        return f"Answer to Q{self.question_id} in attempt {self.attempt_id}"
