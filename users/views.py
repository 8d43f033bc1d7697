import logging

from rest_framework import generics, permissions, status
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenObtainPairView

from lms_platform.responses import EnvelopeMixin
from .serializers import RegisterSerializer, CustomTokenObtainPairSerializer, UserSerializer

logger = logging.getLogger(__name__)


class RegisterView(EnvelopeMixin, generics.CreateAPIView):
    serializer_class = RegisterSerializer
    permission_classes = [permissions.AllowAny]

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info(f"Registered {user.role} account {user.email}")
        return Response({"user": UserSerializer(user).data}, status=status.HTTP_201_CREATED)


class CustomLoginView(EnvelopeMixin, TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer

    def get_authenticate_header(self, request):
        # No authenticators on this view; bad credentials must still be a 401
        return 'Bearer realm="api"'


class UserProfileView(EnvelopeMixin, generics.RetrieveUpdateAPIView):
    serializer_class = UserSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_object(self):
        return self.request.user
