# exams/serializers.py
import random

from django.db import transaction
from rest_framework import serializers

from assessments.models import ExamAttempt
from .models import Exam, Question, Option
from .validators import validate_question_options

# --- Helper Serializers ---

class OptionSerializer(serializers.ModelSerializer):
    # Writable so an update can keep existing options, and their ids, in place
    id = serializers.IntegerField(required=False)

    class Meta:
        model = Option
        fields = ['id', 'text', 'is_correct', 'explanation']

class StudentOptionSerializer(serializers.ModelSerializer):
    """Option as shown while the exam is running: no correctness flag."""
    class Meta:
        model = Option
        fields = ['id', 'text']

# --- Question Serializers ---

class QuestionSerializer(serializers.ModelSerializer):
    # Map frontend 'question_text' to backend 'text'
    question_text = serializers.CharField(source='text')
    # Options arrive as [{ "text": ..., "is_correct": ... }]
    options = OptionSerializer(many=True, required=False)

    # Read-only field to show exam title
    exam_title = serializers.CharField(source='exam.title', read_only=True)

    class Meta:
        model = Question
        fields = [
            'id', 'exam', 'exam_title', 'order', 'question_text', 'question_type',
            'category', 'tags', 'difficulty', 'marks', 'time_limit_minutes',
            'correct_answer', 'explanation', 'hints', 'is_active', 'options'
        ]

    def validate_exam(self, exam):
        request = self.context.get('request')
        user = getattr(request, 'user', None)
        if exam is None or user is None or not user.is_authenticated or user.has_admin_access:
            return exam
        if exam.created_by_id != user.id:
            raise serializers.ValidationError("You can only add questions to your own exams.")
        return exam

    def validate(self, attrs):
        instance = self.instance
        question_type = attrs.get('question_type', getattr(instance, 'question_type', Question.QuestionType.MCQ))
        correct_answer = attrs.get('correct_answer', getattr(instance, 'correct_answer', ''))
        if 'options' in attrs:
            options = attrs['options']
        elif instance is not None:
            options = [{'text': o.text, 'is_correct': o.is_correct} for o in instance.options.all()]
        else:
            options = []
        validate_question_options(question_type, options, correct_answer)
        return attrs

    @transaction.atomic
    def create(self, validated_data):
        options_data = validated_data.pop('options', [])
        question = Question.objects.create(**validated_data)
        for opt in options_data:
            opt.pop('id', None)
            Option.objects.create(question=question, **opt)
        return question

    @transaction.atomic
    def update(self, instance, validated_data):
        options_data = validated_data.pop('options', None)
        question = super().update(instance, validated_data)
        if options_data is not None:
            self._sync_options(question, options_data)
        return question

    def _sync_options(self, question, options_data):
        """
        Options sent with an id are updated in place, the rest are created, and
        existing options left out are deleted. Stored answers reference option
        ids, so deletion is refused while the exam has attempts in progress.
        """
        existing = {opt.id: opt for opt in question.options.all()}
        kept = {opt['id'] for opt in options_data if opt.get('id') in existing}
        removed = set(existing) - kept

        if removed and question.exam_id and ExamAttempt.objects.filter(
            exam_id=question.exam_id, status=ExamAttempt.Status.IN_PROGRESS
        ).exists():
            raise serializers.ValidationError(
                {'options': 'Options cannot be removed while attempts on this exam are in progress.'}
            )

        Option.objects.filter(id__in=removed).delete()
        for opt in options_data:
            option = existing.get(opt.pop('id', None))
            if option is None:
                Option.objects.create(question=question, **opt)
                continue
            for field, value in opt.items():
                setattr(option, field, value)
            option.save()

class StudentQuestionSerializer(serializers.ModelSerializer):
    """Question as delivered to a student: no reference answer, no explanation."""
    question_text = serializers.CharField(source='text', read_only=True)
    options = serializers.SerializerMethodField()

    class Meta:
        model = Question
        fields = [
            'id', 'question_text', 'question_type', 'marks', 'difficulty',
            'time_limit_minutes', 'category', 'tags', 'hints', 'options'
        ]

    def get_options(self, obj):
        options = list(obj.options.all())
        if self.context.get('shuffle_options') and obj.question_type == Question.QuestionType.MCQ:
            random.shuffle(options)
        return StudentOptionSerializer(options, many=True).data

# --- Exam Serializers ---

class ExamSerializer(serializers.ModelSerializer):
    # Read-only counts
    total_questions = serializers.IntegerField(source='questions.count', read_only=True)
    status = serializers.CharField(read_only=True)

    class Meta:
        model = Exam
        fields = [
            'id', 'title', 'description', 'instructions', 'exam_type',
            'duration_minutes', 'total_marks', 'passing_marks', 'max_attempts',
            'shuffle_questions', 'shuffle_options', 'show_results', 'show_correct_answers',
            'time_limit', 'start_date', 'end_date', 'is_active', 'is_published',
            'status', 'total_questions', 'created_at'
        ]
        read_only_fields = ['created_at']

    def validate(self, attrs):
        instance = self.instance
        total = attrs.get('total_marks', getattr(instance, 'total_marks', None))
        passing = attrs.get('passing_marks', getattr(instance, 'passing_marks', 0))
        if total is not None and passing is not None and passing > total:
            raise serializers.ValidationError({'passing_marks': 'Passing marks cannot exceed total marks'})
        start = attrs.get('start_date', getattr(instance, 'start_date', None))
        end = attrs.get('end_date', getattr(instance, 'end_date', None))
        if start and end and start >= end:
            raise serializers.ValidationError({'end_date': 'End date must be after start date'})
        return attrs

class ExamListSerializer(serializers.ModelSerializer):
    question_count = serializers.IntegerField(source='questions.count', read_only=True)

    class Meta:
        model = Exam
        fields = [
            'id', 'title', 'description', 'exam_type', 'duration_minutes', 'total_marks',
            'passing_marks', 'time_limit', 'start_date', 'end_date', 'question_count'
        ]

class StudentExamDetailSerializer(ExamListSerializer):
    """Exam metadata delivered alongside the question set when taking it."""
    class Meta(ExamListSerializer.Meta):
        fields = ExamListSerializer.Meta.fields + [
            'instructions', 'shuffle_questions', 'shuffle_options', 'max_attempts'
        ]
