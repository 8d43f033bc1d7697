"""
Attempt Service
Owns the attempt lifecycle: start/resume, progress saves, finalize, abandon.

All state transitions are guarded in the database: a partial unique
constraint keeps a single in_progress attempt per (student, exam), and the
in_progress -> completed/abandoned transition is a conditional UPDATE so a
racing second submit can never score the attempt twice.
"""
import logging
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import Avg, Count, Q
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from .models import ExamAttempt, AttemptAnswer
from .scoring import TWO_PLACES, ScoringService
from .timing import SUBMIT_GRACE_SECONDS, clamp_reported_time, time_is_up

logger = logging.getLogger(__name__)


class _AlreadyFinalized(Exception):
    pass


class AttemptService:
    """Attempt lifecycle operations"""

    @staticmethod
    def start_or_resume(user, exam, ip_address=None, user_agent=""):
        """
        Return (attempt, created): the student's single in_progress attempt for
        this exam, created on first call.
        """
        reason = exam.availability_error()
        if reason:
            raise ValidationError(reason)

        with transaction.atomic():
            # 🔒 Lock this student's attempts on the exam to serialize starts
            attempts = list(
                ExamAttempt.objects.select_for_update().filter(user=user, exam=exam)
            )
            existing = next((a for a in attempts if a.status == ExamAttempt.Status.IN_PROGRESS), None)
            if existing:
                logger.info(f"Resuming attempt {existing.id} of exam {exam.id} for {user}")
                return existing, False

            if len(attempts) >= exam.max_attempts:
                raise ValidationError("No remaining attempts for this exam")

            try:
                with transaction.atomic():
                    attempt = ExamAttempt.objects.create(
                        user=user,
                        exam=exam,
                        attempt_number=len(attempts) + 1,
                        ip_address=ip_address,
                        user_agent=(user_agent or "")[:500],
                    )
            except IntegrityError:
                # A concurrent start won the insert; hand back its attempt
                attempt = ExamAttempt.objects.filter(
                    user=user, exam=exam, status=ExamAttempt.Status.IN_PROGRESS
                ).first()
                if attempt is None:
                    raise
                logger.info(f"Concurrent start for exam {exam.id} by {user}, resuming attempt {attempt.id}")
                return attempt, False

        logger.info(f"Started attempt {attempt.id} (#{attempt.attempt_number}) of exam {exam.id} for {user}")
        return attempt, True

    @staticmethod
    def _store_answers(attempt, answers):
        """Upsert responses keyed by question id; ids must belong to the exam."""
        valid_ids = set(attempt.exam.questions.filter(is_active=True).values_list('id', flat=True))
        unknown = [qid for qid in answers if qid not in valid_ids]
        if unknown:
            raise ValidationError(f"Questions {sorted(unknown)} do not belong to this exam")

        for question_id, response in answers.items():
            AttemptAnswer.objects.update_or_create(
                attempt=attempt,
                question_id=question_id,
                defaults={'response': response},
            )

    @staticmethod
    def _clean_flags(attempt, flagged):
        valid_ids = set(attempt.exam.questions.filter(is_active=True).values_list('id', flat=True))
        return sorted({qid for qid in flagged if qid in valid_ids})

    @staticmethod
    def save_progress(attempt, answers=None, time_spent=None, flagged=None):
        """Persist partial answers, elapsed time and flags of a running attempt."""
        with transaction.atomic():
            locked = ExamAttempt.objects.select_for_update().select_related('exam').get(pk=attempt.pk)
            if locked.is_terminal:
                raise ValidationError("Cannot update completed attempt")
            if time_is_up(locked):
                raise ValidationError("Time is up for this attempt")

            fields = []
            if answers:
                AttemptService._store_answers(locked, answers)
            if time_spent is not None:
                locked.time_spent = clamp_reported_time(locked, time_spent)
                fields.append('time_spent')
            if flagged is not None:
                locked.flagged_questions = AttemptService._clean_flags(locked, flagged)
                fields.append('flagged_questions')
            if fields:
                locked.save(update_fields=fields)

        return locked

    @staticmethod
    def finalize(attempt, answers=None, time_spent=None):
        """
        Score and complete an attempt exactly once.

        Returns (attempt, already_submitted). A submit that arrives after the
        attempt is completed changes nothing and returns the stored result.
        """
        try:
            with transaction.atomic():
                locked = ExamAttempt.objects.select_for_update().select_related('exam').get(pk=attempt.pk)
                if locked.status == ExamAttempt.Status.COMPLETED:
                    raise _AlreadyFinalized
                if locked.status == ExamAttempt.Status.ABANDONED:
                    raise ValidationError("Attempt was abandoned")

                exam = locked.exam
                late = time_is_up(locked, grace=SUBMIT_GRACE_SECONDS)
                if late:
                    # Only answers saved before the deadline count
                    if answers:
                        logger.warning(f"Attempt {locked.id} submitted after time ran out, ignoring {len(answers)} answers")
                    locked.time_spent = exam.duration_seconds
                else:
                    if answers:
                        AttemptService._store_answers(locked, answers)
                    if time_spent is not None:
                        locked.time_spent = clamp_reported_time(locked, time_spent)

                stored = {a.question_id: a for a in locked.answers.all()}
                score = Decimal(0)
                needs_review = False
                for question in exam.questions.filter(is_active=True).prefetch_related('options'):
                    answer = stored.get(question.id)
                    if answer is None:
                        continue
                    is_correct, marks = ScoringService.grade(question, answer.response)
                    if is_correct is None:
                        needs_review = True
                    answer.is_correct = is_correct
                    answer.awarded_marks = marks
                    answer.save(update_fields=['is_correct', 'awarded_marks'])
                    score += marks

                percentage, passed = ScoringService.summarize(exam, score)

                # Conditional transition: only one writer can move in_progress -> completed
                updated = ExamAttempt.objects.filter(
                    pk=locked.pk, status=ExamAttempt.Status.IN_PROGRESS
                ).update(
                    status=ExamAttempt.Status.COMPLETED,
                    completed_at=timezone.now(),
                    time_spent=locked.time_spent,
                    score=score,
                    percentage=percentage,
                    # Pass/fail waits for manual review of written answers
                    passed=None if needs_review else passed,
                    is_graded=not needs_review,
                )
                if not updated:
                    raise _AlreadyFinalized
        except _AlreadyFinalized:
            logger.info(f"Duplicate submit ignored for attempt {attempt.pk}")
            return ExamAttempt.objects.select_related('exam').get(pk=attempt.pk), True

        finished = ExamAttempt.objects.select_related('exam').get(pk=attempt.pk)
        logger.info(
            f"Attempt {finished.id} completed: score={finished.score} "
            f"percentage={finished.percentage} passed={finished.passed}"
        )
        return finished, False

    @staticmethod
    def abandon(attempt):
        updated = ExamAttempt.objects.filter(
            pk=attempt.pk, status=ExamAttempt.Status.IN_PROGRESS
        ).update(status=ExamAttempt.Status.ABANDONED, completed_at=timezone.now())
        if not updated:
            raise ValidationError("Attempt already finished")
        logger.info(f"Attempt {attempt.pk} abandoned")
        return ExamAttempt.objects.select_related('exam').get(pk=attempt.pk)

    @staticmethod
    def result_summary(attempt):
        answers = list(attempt.answers.all())
        return {
            "total_score": attempt.score,
            "percentage": attempt.percentage,
            "passed": attempt.passed,
            "is_graded": attempt.is_graded,
            "correct_answers": sum(1 for a in answers if a.is_correct),
            "total_questions": attempt.exam.questions.filter(is_active=True).count(),
        }

    @staticmethod
    def statistics(attempts):
        """Aggregate counts and averages over a queryset of attempts."""
        stats = attempts.aggregate(
            total_attempts=Count('id'),
            completed_attempts=Count('id', filter=Q(status=ExamAttempt.Status.COMPLETED)),
            passed_attempts=Count('id', filter=Q(passed=True)),
            pending_grading=Count('id', filter=Q(status=ExamAttempt.Status.COMPLETED, is_graded=False)),
            average_score=Avg('percentage'),
            average_time_spent=Avg('time_spent'),
        )
        stats['average_score'] = Decimal(stats['average_score'] or 0).quantize(TWO_PLACES)
        stats['average_time_spent'] = round(stats['average_time_spent'] or 0)
        return stats
