from rest_framework import serializers
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.db.models import Q
from django.utils import timezone
from django.core.cache import cache
from .models import Review

import logging

User = get_user_model()
logger = logging.getLogger(__name__)

class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])
    role = serializers.ChoiceField(choices=['POSTER', 'DOER'], default='DOER')

    class Meta:
        model = User
        fields = ['username', 'email', 'password', 'name', 'role']

    def validate_email(self, value):
        if value and User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("A user with this email already exists.")
        return value

    def create(self, validated_data):
        password = validated_data.pop('password')
        user = User(**validated_data)
        user.set_password(password)
        user.save()
        logger.info(f"Registered user {user.username} as {user.role}")
        return user

class LoginSerializer(serializers.Serializer):
    identifier = serializers.CharField(max_length=255, trim_whitespace=True)
    password = serializers.CharField(max_length=128, write_only=True)

    def validate(self, data):
        identifier = data.get('identifier').strip().lower()
        password = data.get('password')
        cache_key = f'login_attempts_{identifier}'
        attempts = cache.get(cache_key, 0)
        if attempts >= 5:
            logger.warning(f"Too many login attempts for {identifier}")
            raise serializers.ValidationError("Too many login attempts. Please try again in 15 minutes.")
        user = User.objects.filter(Q(email__iexact=identifier) | Q(username__iexact=identifier)).first()
        if not user:
            logger.warning(f"No user found for identifier: {identifier}")
            cache.set(cache_key, attempts + 1, 900)
            raise serializers.ValidationError("No user found with this email or username.")
        if not user.check_password(password):
            logger.warning(f"Password incorrect for user: {user.username}")
            cache.set(cache_key, attempts + 1, 900)
            raise serializers.ValidationError("Incorrect password.")
        if not user.is_active:
            logger.warning(f"User not active: {user.username}")
            raise serializers.ValidationError("User account is disabled. Please contact support.")
        cache.delete(cache_key)
        data['user'] = user
        return data

    def save(self):
        user = self.validated_data['user']
        user.last_login = timezone.now()
        user.save(update_fields=['last_login'])
        return user

class UserSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'name', 'image', 'rating']

class UserSerializer(serializers.ModelSerializer):
    rating_stats = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id', 'username', 'email', 'name', 'image', 'bio', 'role', 'rating',
            'account_balance', 'is_active', 'date_joined', 'rating_stats'
        ]
        read_only_fields = ['id', 'username', 'role', 'rating', 'account_balance', 'is_active', 'date_joined']

    def get_rating_stats(self, obj):
        return obj.get_rating_stats()

class ProfileUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['name', 'image', 'bio', 'email']

class SwitchRoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=['POSTER', 'DOER'])

class ReviewSerializer(serializers.ModelSerializer):
    reviewer = UserSummarySerializer(read_only=True)
    task_id = serializers.IntegerField(source='assignment_id', read_only=True)
    task_title = serializers.CharField(source='assignment.title', read_only=True)

    class Meta:
        model = Review
        fields = ['id', 'task_id', 'task_title', 'reviewer', 'receiver', 'rating', 'comment', 'created_at', 'updated_at']
        read_only_fields = fields

class ReviewCreateSerializer(serializers.Serializer):
    receiver_id = serializers.IntegerField()
    task_id = serializers.IntegerField()
    rating = serializers.IntegerField(min_value=1, max_value=5)
    comment = serializers.CharField(required=False, allow_blank=True, default='')

class ReviewUpdateSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5)
    comment = serializers.CharField(required=False, allow_blank=True, default='')
