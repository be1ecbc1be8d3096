from rest_framework import serializers
from django.contrib.auth import get_user_model
from django.db.models import Avg, Count
from django.utils import timezone
from core.utils import actor_role_for
import logging

User = get_user_model()
logger = logging.getLogger(__name__)


class UserSerializer(serializers.ModelSerializer):
    role = serializers.SerializerMethodField()
    rating_stats = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id', 'username', 'first_name', 'last_name', 'role', 'email', 'phone_number', 'is_verified',
            'rating_stats'
        ]

    def get_role(self, obj):
        return actor_role_for(obj)

    def get_rating_stats(self, obj):
        stats = obj.reviews_received.aggregate(average_rating=Avg('rating'), rating_count=Count('id'))
        return {
            'average_rating': round(stats['average_rating'] or 0.0, 2),
            'rating_count': stats['rating_count'] or 0,
            'completed_jobs': obj.assigned_jobs.filter(status='completed').count(),
        }


class PublicUserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'first_name', 'last_name']


class LoginSerializer(serializers.Serializer):
    identifier = serializers.CharField(max_length=255, trim_whitespace=True)
    password = serializers.CharField(max_length=128, write_only=True)

    def validate(self, data):
        identifier = data.get('identifier').strip()
        user = User.get_by_identifier(identifier)
        if not user:
            logger.error(f"No user found for identifier: {identifier}")
            raise serializers.ValidationError("No user found with this email, phone, or username.")
        if not user.check_password(data.get('password')):
            logger.error(f"Password incorrect for user: {user.username}")
            raise serializers.ValidationError("Incorrect password.")
        if not user.is_active:
            logger.error(f"User not active: {user.username}")
            raise serializers.ValidationError("User account is disabled. Please contact support.")
        data['user'] = user
        return data

    def save(self):
        user = self.validated_data['user']
        user.last_login = timezone.now()
        user.save(update_fields=['last_login'])
        logger.info(f"Login successful for user: {user.username}")
        return user
