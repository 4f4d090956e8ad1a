"""
Users — Views

Auth endpoints (login, refresh, logout, me) and the user management
ViewSet.

@file users/views.py
"""

import logging

from rest_framework import status, viewsets
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView

from core.constants import AUDIT_ACTION_LOGIN, AUDIT_ACTION_LOGIN_FAILED, AUDIT_ACTION_LOGOUT
from core.services import AuditService

from .context import ActorContext
from .models import User
from .permissions import CanManageUsers, IsActiveUser
from .serializers import CustomTokenObtainPairSerializer, UserReadSerializer, UserWriteSerializer
from .services import AuthService, UserService

logger = logging.getLogger('depotrack')


# ---------------------------------------------------------------------------
# Auth views
# ---------------------------------------------------------------------------

class LoginView(APIView):
    """POST /v1/auth/login — Authenticate and obtain JWT pair."""
    permission_classes = [AllowAny]
    throttle_scope = 'anon'

    def post(self, request):
        serializer = CustomTokenObtainPairSerializer(
            data=request.data, context={'request': request},
        )
        ip_address = AuditService.get_client_ip(request)
        user_agent = request.META.get('HTTP_USER_AGENT', '')
        if not serializer.is_valid():
            known = User.objects.filter(email__iexact=request.data.get('email', '')).first()
            AuthService.log_auth_event(
                action=AUDIT_ACTION_LOGIN_FAILED,
                user=known,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            return Response(
                {'success': False, 'errors': serializer.errors, 'code': 'AUTHENTICATION_FAILED'},
                status=status.HTTP_400_BAD_REQUEST,
            )

        user_data = serializer.validated_data.get('user')
        AuthService.log_auth_event(
            action=AUDIT_ACTION_LOGIN,
            user=User.objects.get(pk=user_data['id']),
            ip_address=ip_address,
            user_agent=user_agent,
        )

        return Response({
            'success': True,
            'data': {
                'access': serializer.validated_data['access'],
                'refresh': serializer.validated_data['refresh'],
                'user': user_data,
            },
        })


class LogoutView(APIView):
    """POST /v1/auth/logout — Blacklist the refresh token."""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        refresh_token = request.data.get('refresh')
        if refresh_token:
            try:
                RefreshToken(refresh_token).blacklist()
            except TokenError:
                logger.info('Logout with an invalid refresh token for user %s', request.user.pk)

        AuthService.log_auth_event(
            action=AUDIT_ACTION_LOGOUT,
            user=request.user,
            ip_address=AuditService.get_client_ip(request),
            user_agent=request.META.get('HTTP_USER_AGENT', ''),
        )

        return Response({'success': True, 'data': None}, status=status.HTTP_200_OK)


class TokenRefreshAPIView(TokenRefreshView):
    """POST /v1/auth/refresh — Rotate refresh token."""
    pass


class MeView(APIView):
    """GET /v1/auth/me — Return the current authenticated user."""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response({
            'success': True,
            'data': UserReadSerializer(request.user).data,
        })


# ---------------------------------------------------------------------------
# User management ViewSet
# ---------------------------------------------------------------------------

class UserViewSet(viewsets.ModelViewSet):
    """
    CRUD for user accounts. Restricted to roles with can_manage_users.
    Managers only see users of their own unit unless their role spans all
    units.
    """

    permission_classes = [IsActiveUser, CanManageUsers]
    filterset_fields = ['role', 'unit', 'is_active']
    search_fields = ['email', 'full_name']
    ordering_fields = ['created_at', 'full_name', 'role']
    ordering = ['-created_at']

    def get_queryset(self):
        qs = User.objects.filter(is_deleted=False).select_related('unit')
        actor = ActorContext.from_user(self.request.user)
        if not actor.is_global:
            qs = qs.filter(unit_id=actor.unit_id)
        return qs

    def get_serializer_class(self):
        if self.action in ('list', 'retrieve'):
            return UserReadSerializer
        return UserWriteSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        user = UserService.create_user(
            email=data.pop('email'),
            password=data.pop('password', None),
            actor=request.user,
            **data,
        )
        return Response(UserReadSerializer(user).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=kwargs.get('partial', False))
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        password = data.pop('password', None)
        user = UserService.update_user(user_id=instance.pk, actor=request.user, **data)
        if password:
            user.set_password(password)
            user.save(update_fields=['password'])
        return Response(UserReadSerializer(user).data)

    def destroy(self, request, *args, **kwargs):
        instance = self.get_object()
        UserService.deactivate_user(user_id=instance.pk, actor=ActorContext.from_user(request.user))
        return Response(status=status.HTTP_204_NO_CONTENT)
