"""
Users — Views

Auth endpoints (login, refresh) and the authenticated user's profile
with read-derived statistics.

@file users/views.py
"""

import logging

from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenRefreshView

from .serializers import (
    CustomTokenObtainPairSerializer,
    ProfileUpdateSerializer,
    UserReadSerializer,
    UserStatsSerializer,
)
from .services import UserService, UserStatsService

logger = logging.getLogger('medshare')


class LoginView(APIView):
    """POST /v1/auth/login — Authenticate with email + password and obtain a JWT pair."""
    permission_classes = [AllowAny]
    throttle_scope = 'anon'

    def post(self, request):
        serializer = CustomTokenObtainPairSerializer(
            data=request.data, context={'request': request},
        )
        serializer.is_valid(raise_exception=True)
        return Response({
            'success': True,
            'data': {
                'access': serializer.validated_data['access'],
                'refresh': serializer.validated_data['refresh'],
                'user': serializer.validated_data['user'],
            },
        })


class TokenRefreshAPIView(TokenRefreshView):
    """POST /v1/auth/refresh — Exchange a refresh token for a new access token."""
    permission_classes = [AllowAny]


class MeView(APIView):
    """GET / PATCH /v1/auth/me — Current user's profile and lifetime statistics."""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        stats = UserStatsService.for_user(request.user)
        return Response({
            'success': True,
            'data': {
                'user': UserReadSerializer(request.user).data,
                'stats': UserStatsSerializer(stats).data,
            },
        })

    def patch(self, request):
        serializer = ProfileUpdateSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        user = UserService.update_profile(user=request.user, **serializer.validated_data)
        logger.info('Profile updated for user %s.', user.pk)
        return Response({'success': True, 'data': UserReadSerializer(user).data})
