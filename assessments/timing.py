"""
Server-side clock for exam attempts.

Two inputs decide how much time an attempt has used: the ``time_spent`` the
client persists, and the wall-clock time since ``started_at``. The larger one
wins, so a reload or a skipped persistence call never hands back time.
"""
from django.utils import timezone


def elapsed_since_start(attempt, now=None):
    now = now or timezone.now()
    return max(0, int((now - attempt.started_at).total_seconds()))


def effective_time_spent(attempt, now=None):
    spent = max(attempt.time_spent or 0, elapsed_since_start(attempt, now))
    if attempt.exam.time_limit:
        spent = min(attempt.exam.duration_seconds, spent)
    return spent


def remaining_seconds(attempt, now=None):
    """
    Seconds left on the countdown: None when the exam has no time limit,
    0 once the attempt has finished.
    """
    if not attempt.exam.time_limit:
        return None
    if attempt.is_terminal:
        return 0
    return max(0, attempt.exam.duration_seconds - effective_time_spent(attempt, now))


def clamp_reported_time(attempt, reported):
    """
    Accept a client-reported ``time_spent`` without letting it move backwards
    or beyond the exam duration.
    """
    spent = max(attempt.time_spent or 0, int(reported or 0))
    if attempt.exam.time_limit:
        spent = min(attempt.exam.duration_seconds, spent)
    return spent


# Answers sent with a submit are still accepted this long past the deadline, so
# the client's automatic submission at zero is not lost to request latency
SUBMIT_GRACE_SECONDS = 30


def time_is_up(attempt, now=None, grace=0):
    """True once a timed attempt has used its full duration (plus ``grace``)."""
    if not attempt.exam.time_limit:
        return False
    used = max(attempt.time_spent or 0, elapsed_since_start(attempt, now))
    return used >= attempt.exam.duration_seconds + grace
