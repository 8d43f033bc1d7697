import logging

from django.shortcuts import get_object_or_404
from rest_framework import generics, pagination, status, views
from rest_framework.response import Response

from lms_platform.responses import EnvelopeMixin
from exams.models import Exam
from .models import ExamAttempt
from .permissions import IsInstructorOrAdmin, IsStudent
from .serializers import (
    ExamAttemptSerializer, AttemptProgressSerializer, StartAttemptSerializer,
    StaffAttemptSerializer, AttemptFilterSerializer,
)
from .services import AttemptService
from .timing import remaining_seconds

logger = logging.getLogger(__name__)


def _client_ip(request):
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


class StudentAttemptMixin:
    """Students only ever see their own attempts; others are 404."""
    permission_classes = [IsStudent]

    def get_attempt(self, pk):
        return get_object_or_404(
            ExamAttempt.objects.select_related('exam').prefetch_related('answers'),
            pk=pk,
            user=self.request.user,
        )


class ExamAttemptListCreateView(EnvelopeMixin, StudentAttemptMixin, views.APIView):
    """
    GET: the student's attempts (?exam_id=, ?status=).
    POST: create-or-resume the single in_progress attempt for { "exam_id": ... }.
    """

    def get(self, request):
        attempts = ExamAttempt.objects.filter(user=request.user).select_related('exam').prefetch_related('answers')
        exam_id = request.query_params.get('exam_id')
        if exam_id:
            attempts = attempts.filter(exam_id=exam_id)
        status_filter = request.query_params.get('status')
        if status_filter and status_filter != 'all':
            attempts = attempts.filter(status=status_filter)
        return Response({"attempts": ExamAttemptSerializer(attempts, many=True).data})

    def post(self, request):
        payload = StartAttemptSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        exam = get_object_or_404(Exam, pk=payload.validated_data['exam_id'])

        attempt, created = AttemptService.start_or_resume(
            request.user,
            exam,
            ip_address=_client_ip(request),
            user_agent=request.META.get('HTTP_USER_AGENT', ''),
        )
        data = {
            "attempt": ExamAttemptSerializer(attempt).data,
            "remaining_seconds": remaining_seconds(attempt),
            "resumed": not created,
        }
        if not created:
            data["message"] = "Resuming existing attempt"
        return Response(data, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


class ExamAttemptDetailView(EnvelopeMixin, StudentAttemptMixin, views.APIView):
    """GET one attempt; PUT saves progress (answers, time_spent, flags)."""

    def get(self, request, pk):
        attempt = self.get_attempt(pk)
        return Response({"attempt": ExamAttemptSerializer(attempt).data})

    def put(self, request, pk):
        attempt = self.get_attempt(pk)
        payload = AttemptProgressSerializer(data=request.data)
        payload.is_valid(raise_exception=True)

        attempt = AttemptService.save_progress(
            attempt,
            answers=payload.answer_map(),
            time_spent=payload.validated_data.get('time_spent'),
            flagged=payload.validated_data.get('flagged_questions'),
        )
        return Response({
            "attempt": ExamAttemptSerializer(attempt).data,
            "remaining_seconds": remaining_seconds(attempt),
        })


class SubmitAttemptView(EnvelopeMixin, StudentAttemptMixin, views.APIView):
    """
    Student submits answers.
    Scores auto-graded questions immediately; idempotent on repeat.
    """

    def post(self, request, pk):
        attempt = self.get_attempt(pk)
        payload = AttemptProgressSerializer(data=request.data)
        payload.is_valid(raise_exception=True)

        attempt, already_submitted = AttemptService.finalize(
            attempt,
            answers=payload.answer_map(),
            time_spent=payload.validated_data.get('time_spent'),
        )
        data = {
            "attempt": ExamAttemptSerializer(attempt).data,
            "already_submitted": already_submitted,
        }
        if attempt.exam.show_results:
            data["score"] = AttemptService.result_summary(attempt)
        return Response(data)


class AbandonAttemptView(EnvelopeMixin, StudentAttemptMixin, views.APIView):

    def post(self, request, pk):
        attempt = AttemptService.abandon(self.get_attempt(pk))
        return Response({"attempt": ExamAttemptSerializer(attempt).data})


# --- STAFF VIEWS ---

class AttemptPagination(pagination.PageNumberPagination):
    page_size = 10
    page_size_query_param = 'limit'
    max_page_size = 100


class StaffAttemptListView(EnvelopeMixin, generics.ListAPIView):
    """
    Attempts on the requester's exams (every exam for admins), filtered and
    paginated, with stats over the whole filtered set.
    """
    permission_classes = [IsInstructorOrAdmin]
    serializer_class = StaffAttemptSerializer
    pagination_class = AttemptPagination

    def get_queryset(self):
        attempts = ExamAttempt.objects.select_related('exam', 'user').prefetch_related('answers')
        if not self.request.user.has_admin_access:
            attempts = attempts.filter(exam__created_by=self.request.user)
        return attempts

    def filter_queryset(self, queryset):
        params = AttemptFilterSerializer(data=self.request.query_params.dict())
        params.is_valid(raise_exception=True)
        filters = params.validated_data

        if 'exam' in filters:
            queryset = queryset.filter(exam_id=filters['exam'])
        if 'student' in filters:
            queryset = queryset.filter(user_id=filters['student'])
        if filters['status'] != 'all':
            queryset = queryset.filter(status=filters['status'])
        if 'passed' in filters:
            queryset = queryset.filter(passed=filters['passed'])
        if 'is_graded' in filters:
            queryset = queryset.filter(is_graded=filters['is_graded'])
        if 'start_date' in filters:
            queryset = queryset.filter(started_at__gte=filters['start_date'])
        if 'end_date' in filters:
            queryset = queryset.filter(started_at__lte=filters['end_date'])

        sort = filters['sort_by'] if filters['sort_order'] == 'asc' else f"-{filters['sort_by']}"
        return queryset.order_by(sort, '-id')

    def list(self, request, *args, **kwargs):
        attempts = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(attempts)
        current = self.paginator.page
        return Response({
            "attempts": self.get_serializer(page, many=True).data,
            "pagination": {
                "page": current.number,
                "limit": current.paginator.per_page,
                "total": current.paginator.count,
                "pages": current.paginator.num_pages,
            },
            "stats": AttemptService.statistics(attempts),
        })
