"""
Serializers for dashboard user authentication.
"""
from django.contrib.auth import authenticate
from rest_framework import serializers

from .models import User


class UserSerializer(serializers.ModelSerializer):
    """Dashboard user, with the number of connected websites."""
    website_count = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ('id', 'email', 'first_name', 'last_name', 'website_count', 'created_at')
        read_only_fields = ('id', 'created_at')

    def get_website_count(self, obj):
        return obj.websites.count()


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, style={'input_type': 'password'})

    def validate(self, attrs):
        # USERNAME_FIELD is email, so the backend looks the user up by it
        user = authenticate(username=attrs['email'], password=attrs['password'])
        if user is None:
            # ModelBackend refuses inactive users as well
            raise serializers.ValidationError('Invalid email or password.')
        attrs['user'] = user
        return attrs


def _split_name(name):
    parts = (name or '').strip().split(None, 1)
    return (parts + ['', ''])[:2]


class RegisterSerializer(serializers.Serializer):
    """
    Create a dashboard user.

    'name' is split into first/last name unless those are given explicitly.
    """
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, style={'input_type': 'password'}, min_length=8)
    name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    first_name = serializers.CharField(required=False, allow_blank=True, max_length=150)
    last_name = serializers.CharField(required=False, allow_blank=True, max_length=150)

    def validate_email(self, value):
        value = value.lower()
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError('A user with this email already exists.')
        return value

    def create(self, validated_data):
        first_name, last_name = _split_name(validated_data.get('name'))
        email = validated_data['email']
        return User.objects.create_user(
            username=email,
            email=email,
            password=validated_data['password'],
            first_name=validated_data.get('first_name') or first_name,
            last_name=validated_data.get('last_name') or last_name,
        )
