"""
Users — Serializers

Read and write serializers for User, and the JWT token serializer that
puts role and unit claims in the access token.

@file users/serializers.py
"""

from django.contrib.auth import authenticate
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .models import User


# ---------------------------------------------------------------------------
# JWT — custom claims
# ---------------------------------------------------------------------------

class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Inject role and home unit into the JWT payload."""

    username_field = 'email'

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['email'] = user.email
        token['role'] = user.role
        token['unit_id'] = str(user.unit_id) if user.unit_id else None
        return token

    def validate(self, attrs):
        user = authenticate(
            request=self.context.get('request'),
            email=attrs.get('email'),
            password=attrs.get('password'),
        )

        if user is None or user.is_deleted:
            raise serializers.ValidationError(
                {'detail': 'Invalid credentials or account not active.'},
                code='authentication_failed',
            )

        data = super().validate(attrs)
        data['user'] = UserReadSerializer(user).data
        return data


# ---------------------------------------------------------------------------
# User serializers
# ---------------------------------------------------------------------------

class UserReadSerializer(serializers.ModelSerializer):
    """Read-only user representation, including the resolved capabilities."""

    unit_name = serializers.CharField(source='unit.name', read_only=True, default=None)
    capabilities = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id', 'email', 'full_name', 'role', 'unit', 'unit_name',
            'is_staff', 'is_active', 'date_joined', 'capabilities',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_capabilities(self, obj):
        return obj.capabilities.as_dict()


class UserWriteSerializer(serializers.ModelSerializer):
    """Create / update users. Password is write-only."""

    password = serializers.CharField(write_only=True, required=False, min_length=10)

    class Meta:
        model = User
        fields = ['email', 'full_name', 'password', 'role', 'unit', 'is_active']

    def validate_email(self, value):
        qs = User.objects.filter(email__iexact=value)
        if self.instance:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError('Email already in use.')
        return value
