"""
Serializers for authentication, staff profiles and user administration.
"""

from django.contrib.auth import get_user_model
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .models import Role, StaffProfile
from .permissions import get_user_role

User = get_user_model()


class StaffProfileSerializer(serializers.ModelSerializer):
    """Serializer for StaffProfile model."""

    class Meta:
        model = StaffProfile
        fields = [
            'id',
            'role',
            'bio',
            'last_active_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'role', 'created_at', 'updated_at', 'last_active_at']


class UserSerializer(serializers.ModelSerializer):
    """Serializer for User with nested profile and effective role."""

    profile = StaffProfileSerializer(source='staff_profile', read_only=True)
    role = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id',
            'username',
            'email',
            'first_name',
            'last_name',
            'is_active',
            'date_joined',
            'last_login',
            'role',
            'profile',
        ]
        read_only_fields = fields

    def get_role(self, obj):
        role = get_user_role(obj)
        return role.value if role else None


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Token serializer that embeds the editorial role and returns user info.
    """

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['email'] = user.email
        token['role'] = get_user_role(user).value
        return token

    def validate(self, attrs):
        data = super().validate(attrs)
        data['user'] = UserSerializer(self.user).data
        return data


class UserUpdateSerializer(serializers.ModelSerializer):
    """Fields a user may change on their own account."""

    bio = serializers.CharField(required=False, allow_blank=True, write_only=True)

    class Meta:
        model = User
        fields = ['first_name', 'last_name', 'email', 'bio']


class UserAdminUpdateSerializer(serializers.ModelSerializer):
    """Fields an admin may change on any account."""

    role = serializers.ChoiceField(choices=Role.choices, required=False, write_only=True)
    bio = serializers.CharField(required=False, allow_blank=True, write_only=True)

    class Meta:
        model = User
        fields = ['first_name', 'last_name', 'email', 'is_active', 'role', 'bio']
