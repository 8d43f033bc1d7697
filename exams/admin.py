from django.contrib import admin

# Register your models here.
from .models import Exam, Question, Option


class OptionInline(admin.TabularInline):
    model = Option
    extra = 0


@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ('text', 'exam', 'question_type', 'marks', 'difficulty', 'is_active')
    list_filter = ('question_type', 'difficulty', 'is_active')
    search_fields = ('text', 'category')
    inlines = [OptionInline]


@admin.register(Exam)
class ExamAdmin(admin.ModelAdmin):
    list_display = ('title', 'duration_minutes', 'total_marks', 'passing_marks', 'is_published', 'is_active')
    list_filter = ('is_published', 'is_active', 'exam_type')
    search_fields = ('title',)
