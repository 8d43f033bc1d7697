import logging
import random

from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import viewsets, generics, filters, exceptions
from rest_framework.decorators import action
from rest_framework.response import Response

from lms_platform.responses import EnvelopeMixin
from assessments.models import ExamAttempt
from assessments.permissions import IsInstructorOrAdmin, IsStudent
from .models import Exam, Question
from .serializers import (
    ExamSerializer, ExamListSerializer, StudentExamDetailSerializer,
    QuestionSerializer, StudentQuestionSerializer,
)

logger = logging.getLogger(__name__)


def authored_questions(user):
    """Questions an author may manage: their own bank plus those on their exams."""
    questions = Question.objects.all()
    if user.has_admin_access:
        return questions
    return questions.filter(Q(created_by=user) | Q(exam__created_by=user))


class ExamViewSet(EnvelopeMixin, viewsets.ModelViewSet):
    """
    Exam authoring for instructors and admins.
    Instructors only see (and so only edit or delete) the exams they created.
    """
    queryset = Exam.objects.all().order_by('-created_at')
    serializer_class = ExamSerializer
    permission_classes = [IsInstructorOrAdmin]

    # Enable search on title and description
    filter_backends = [filters.SearchFilter]
    search_fields = ['title', 'description']

    def get_queryset(self):
        queryset = super().get_queryset()
        if not self.request.user.has_admin_access:
            queryset = queryset.filter(created_by=self.request.user)
        return queryset

    def perform_create(self, serializer):
        exam = serializer.save(created_by=self.request.user)
        logger.info(f"Exam {exam.id} created by {self.request.user}")

    @action(detail=True, methods=['post'], url_path='assign-questions')
    def assign_questions(self, request, pk=None):
        """
        Assigns a list of Question IDs to this Exam.
        Payload: { "question_ids": [1, 2, 3] }
        """
        exam = self.get_object()
        question_ids = request.data.get('question_ids', [])
        if not isinstance(question_ids, list):
            raise exceptions.ValidationError("question_ids must be a list")

        # Appended questions keep the order they were sent in
        next_order = exam.questions.count()
        count = 0
        questions = authored_questions(request.user).filter(id__in=question_ids).order_by('id')
        for offset, question in enumerate(questions):
            question.exam = exam
            question.order = next_order + offset
            question.save(update_fields=['exam', 'order'])
            count += 1

        return Response({"status": f"Added {count} questions to {exam.title}", "assigned": count})

    @action(detail=True, methods=['post'], url_path='remove-questions')
    def remove_questions(self, request, pk=None):
        """
        Removes questions from the exam (sets exam=None), returning them to the bank.
        """
        question_ids = request.data.get('question_ids', [])
        count = Question.objects.filter(id__in=question_ids, exam=self.get_object()).update(exam=None)
        return Response({"status": "Questions returned to bank", "removed": count})


class QuestionViewSet(EnvelopeMixin, viewsets.ModelViewSet):
    queryset = Question.objects.all().prefetch_related('options').order_by('-id')
    serializer_class = QuestionSerializer
    permission_classes = [IsInstructorOrAdmin]

    # Enable Search and Filtering for the Question Bank
    filter_backends = [filters.SearchFilter]
    search_fields = ['text', 'category']

    def get_queryset(self):
        queryset = authored_questions(self.request.user).prefetch_related('options').order_by('-id')
        # Filter by Exam if provided ?exam_id=1
        exam_id = self.request.query_params.get('exam_id')
        if exam_id:
            queryset = queryset.filter(exam_id=exam_id)
        return queryset

    def perform_create(self, serializer):
        serializer.save(created_by=self.request.user)


# --- STUDENT VIEWS ---

class StudentExamListView(EnvelopeMixin, generics.ListAPIView):
    """Published, active exams the student can still start or resume."""
    permission_classes = [IsStudent]
    serializer_class = ExamListSerializer

    def get_queryset(self):
        return Exam.objects.filter(is_published=True, is_active=True).order_by('-created_at')

    def list(self, request, *args, **kwargs):
        exams = list(self.get_queryset())
        attempts = ExamAttempt.objects.filter(user=request.user, exam__in=exams)

        used = {}
        resumable = set()
        for attempt in attempts:
            used[attempt.exam_id] = used.get(attempt.exam_id, 0) + 1
            if attempt.status == ExamAttempt.Status.IN_PROGRESS:
                resumable.add(attempt.exam_id)

        available = [
            exam for exam in exams
            if exam.availability_error() is None
            and (exam.id in resumable or used.get(exam.id, 0) < exam.max_attempts)
        ]
        data = self.get_serializer(available, many=True).data
        return Response({"exams": data, "stats": {"available_exams": len(available)}})


class StudentExamDetailView(EnvelopeMixin, generics.RetrieveAPIView):
    """Exam metadata plus its question set, shuffled when the exam asks for it."""
    permission_classes = [IsStudent]

    def retrieve(self, request, pk=None):
        exam = get_object_or_404(Exam, pk=pk)
        reason = exam.availability_error()
        if reason:
            logger.info(f"Exam {exam.id} requested by {request.user} but unavailable: {reason}")
            raise exceptions.ValidationError(reason)

        questions = list(exam.questions.filter(is_active=True).prefetch_related('options'))
        if exam.shuffle_questions:
            random.shuffle(questions)

        question_data = StudentQuestionSerializer(
            questions, many=True, context={'shuffle_options': exam.shuffle_options}
        ).data
        return Response({
            "exam": StudentExamDetailSerializer(exam).data,
            "questions": question_data,
        })
