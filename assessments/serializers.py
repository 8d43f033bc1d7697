from rest_framework import serializers

from exams.serializers import ExamListSerializer
from users.serializers import UserSerializer
from .models import ExamAttempt, AttemptAnswer
from .timing import remaining_seconds


class AnswerValueField(serializers.Field):
    """A submitted answer: one string, or a list of strings (multi-select)."""
    default_error_messages = {
        'invalid': 'Answer must be a string or a list of strings.',
    }

    def to_internal_value(self, data):
        if isinstance(data, bool) or data is None:
            self.fail('invalid')
        if isinstance(data, (str, int)):
            return str(data)
        if isinstance(data, list) and all(isinstance(item, (str, int)) and not isinstance(item, bool) for item in data):
            return [str(item) for item in data]
        self.fail('invalid')

    def to_representation(self, value):
        return value


class AnswerSubmitSerializer(serializers.Serializer):
    question_id = serializers.IntegerField()
    answer = AnswerValueField()


class AttemptProgressSerializer(serializers.Serializer):
    """Payload of save-progress (PUT) and submit (POST)."""
    answers = AnswerSubmitSerializer(many=True, required=False)
    time_spent = serializers.IntegerField(min_value=0, required=False)
    flagged_questions = serializers.ListField(child=serializers.IntegerField(), required=False)

    def answer_map(self):
        answers = self.validated_data.get('answers')
        if answers is None:
            return None
        return {item['question_id']: item['answer'] for item in answers}


class StartAttemptSerializer(serializers.Serializer):
    exam_id = serializers.IntegerField()


class AttemptAnswerSerializer(serializers.ModelSerializer):
    question_id = serializers.IntegerField(read_only=True)
    answer = serializers.JSONField(source='response', read_only=True)

    class Meta:
        model = AttemptAnswer
        fields = ['question_id', 'answer', 'is_correct', 'awarded_marks']

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if not self.context.get('reveal_grading'):
            data.pop('is_correct')
            data.pop('awarded_marks')
        return data


class ExamAttemptSerializer(serializers.ModelSerializer):
    exam = ExamListSerializer(read_only=True)
    exam_id = serializers.IntegerField(read_only=True)
    answers = serializers.SerializerMethodField()
    remaining_seconds = serializers.SerializerMethodField()

    class Meta:
        model = ExamAttempt
        fields = [
            'id', 'exam_id', 'exam', 'attempt_number', 'status', 'started_at', 'completed_at',
            'time_spent', 'remaining_seconds', 'score', 'percentage', 'passed', 'is_graded',
            'flagged_questions', 'answers'
        ]
        read_only_fields = fields

    def results_visible(self, obj):
        return obj.status != ExamAttempt.Status.COMPLETED or obj.exam.show_results

    def grading_visible(self, obj):
        # Grading is only visible once the attempt is over, and only if the exam allows it
        return (
            obj.status == ExamAttempt.Status.COMPLETED
            and obj.exam.show_results
            and obj.exam.show_correct_answers
        )

    def get_remaining_seconds(self, obj):
        return remaining_seconds(obj)

    def get_answers(self, obj):
        context = {'reveal_grading': self.grading_visible(obj)}
        return AttemptAnswerSerializer(obj.answers.all(), many=True, context=context).data

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if not self.results_visible(instance):
            for field in ('score', 'percentage', 'passed'):
                data[field] = None
        return data


class StaffAttemptSerializer(ExamAttemptSerializer):
    """Attempt as seen by instructors and admins: always with the student and full grading."""
    student = UserSerializer(source='user', read_only=True)

    class Meta(ExamAttemptSerializer.Meta):
        fields = ExamAttemptSerializer.Meta.fields + ['student']
        read_only_fields = fields

    def results_visible(self, obj):
        return True

    def grading_visible(self, obj):
        return True


class AttemptFilterSerializer(serializers.Serializer):
    """Query parameters of the staff attempt listing."""
    SORT_FIELDS = ('started_at', 'completed_at', 'score', 'percentage', 'time_spent')

    exam = serializers.IntegerField(required=False)
    student = serializers.IntegerField(required=False)
    status = serializers.ChoiceField(choices=[*ExamAttempt.Status.values, 'all'], default='all')
    passed = serializers.BooleanField(required=False)
    is_graded = serializers.BooleanField(required=False)
    start_date = serializers.DateTimeField(required=False)
    end_date = serializers.DateTimeField(required=False)
    sort_by = serializers.ChoiceField(choices=SORT_FIELDS, default='started_at')
    sort_order = serializers.ChoiceField(choices=['asc', 'desc'], default='desc')
