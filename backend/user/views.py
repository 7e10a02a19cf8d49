import logging

from django.contrib.auth import authenticate, login, logout
from django.middleware.csrf import get_token
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import CuratorSerializer, LoginSerializer

logger = logging.getLogger(__name__)


class LoginView(APIView):
    # No authenticators: a stale session must not trigger CSRF checks on login.
    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        username = serializer.validated_data['username']

        user = authenticate(
            request._request,
            username=username,
            password=serializer.validated_data['password'],
        )
        if user is None:
            logger.warning("Failed login attempt for username %r", username)
            return Response(
                {'message': 'Invalid credentials'},
                status=status.HTTP_401_UNAUTHORIZED
            )

        login(request._request, user)
        # Hand the client a CSRF cookie for the session-authenticated writes.
        get_token(request._request)
        logger.info("Curator %s logged in", user.username)
        return Response({'user': CuratorSerializer(user).data})


class LogoutView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        logout(request._request)
        return Response({'message': 'Logged out'})


class CurrentUserView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        get_token(request._request)
        return Response({'user': CuratorSerializer(request.user).data})
