from rest_framework import exceptions, permissions


class IsInstructorOrAdmin(permissions.BasePermission):
    """
    Allows access to Admins and Instructors.
    Strictly blocks Students.
    """
    def has_permission(self, request, view):
        # 1. User must be logged in
        if not request.user or not request.user.is_authenticated:
            return False

        # 2. Check Role
        if not request.user.can_author_exams:
            raise exceptions.NotAuthenticated("Instructor or admin access required")
        return True


class IsStudent(permissions.BasePermission):
    """Exam taking is reserved to student accounts."""
    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        if not request.user.is_student:
            raise exceptions.NotAuthenticated("Student access required")
        return True
