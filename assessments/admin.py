from django.contrib import admin

from .models import ExamAttempt, AttemptAnswer


class AttemptAnswerInline(admin.TabularInline):
    model = AttemptAnswer
    extra = 0
    readonly_fields = ('question', 'response', 'is_correct', 'awarded_marks')


@admin.register(ExamAttempt)
class ExamAttemptAdmin(admin.ModelAdmin):
    list_display = ('user', 'exam', 'attempt_number', 'status', 'score', 'percentage', 'passed', 'started_at')
    list_filter = ('status', 'passed', 'is_graded')
    readonly_fields = ('started_at', 'completed_at')
    inlines = [AttemptAnswerInline]
