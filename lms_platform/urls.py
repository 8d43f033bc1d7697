from django.contrib import admin
from django.urls import path, include
from rest_framework.routers import DefaultRouter

# Import Views
from users.views import RegisterView, CustomLoginView, UserProfileView
from exams.views import ExamViewSet, QuestionViewSet, StudentExamListView, StudentExamDetailView
from assessments.views import (
    ExamAttemptListCreateView,
    ExamAttemptDetailView,
    SubmitAttemptView,
    AbandonAttemptView,
    StaffAttemptListView,
)

# Router (instructor / admin authoring)
router = DefaultRouter()
router.register(r'exams', ExamViewSet, basename='exams')
router.register(r'questions', QuestionViewSet, basename='questions')

urlpatterns = [
    path('admin/', admin.site.urls),

    # --- Authentication ---
    path('api/auth/register/', RegisterView.as_view(), name='register'),
    path('api/auth/login/', CustomLoginView.as_view(), name='login'),
    path('api/auth/profile/', UserProfileView.as_view(), name='user-profile'),

    # --- Student Exam Taking ---
    path('api/student/exams/', StudentExamListView.as_view(), name='student-exams'),
    path('api/student/exams/<int:pk>/', StudentExamDetailView.as_view(), name='student-exam-detail'),
    path('api/student/exam-attempts/', ExamAttemptListCreateView.as_view(), name='exam-attempts'),
    path('api/student/exam-attempts/<int:pk>/', ExamAttemptDetailView.as_view(), name='exam-attempt-detail'),
    path('api/student/exam-attempts/<int:pk>/submit/', SubmitAttemptView.as_view(), name='exam-attempt-submit'),
    path('api/student/exam-attempts/<int:pk>/abandon/', AbandonAttemptView.as_view(), name='exam-attempt-abandon'),

    # --- Staff Results ---
    path('api/exam-attempts/', StaffAttemptListView.as_view(), name='staff-exam-attempts'),

    # --- Standard API Routes ---
    path('api/', include(router.urls)),
]
