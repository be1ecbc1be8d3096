from rest_framework import serializers
from django.utils import timezone
from apps.users.serializers import PublicUserSerializer
from core.utils import actor_role_for
from .models import Job, Application, JobRevision, Review
from .transitions import available_transitions
import logging

logger = logging.getLogger(__name__)


class JobRevisionSerializer(serializers.ModelSerializer):
    requested_by = PublicUserSerializer(read_only=True)

    class Meta:
        model = JobRevision
        fields = ['id', 'requested_by', 'reason', 'requested_at']


class JobSerializer(serializers.ModelSerializer):
    client = PublicUserSerializer(read_only=True)
    worker = PublicUserSerializer(read_only=True)
    allowed_actions = serializers.SerializerMethodField()

    class Meta:
        model = Job
        fields = [
            'id', 'title', 'description', 'category', 'budget', 'currency', 'deadline', 'status',
            'client', 'worker', 'worker_acceptance', 'progress', 'agreed_amount', 'start_date',
            'completion_date', 'version', 'allowed_actions', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'status', 'worker_acceptance', 'progress', 'agreed_amount', 'start_date',
            'completion_date', 'version', 'created_at', 'updated_at'
        ]

    def get_allowed_actions(self, obj):
        request = self.context.get('request')
        if request is None or not request.user.is_authenticated:
            return []
        return available_transitions(obj, actor_role_for(request.user), request.user.id, timezone.now())

    def validate_budget(self, value):
        if value <= 0:
            raise serializers.ValidationError("Budget must be greater than zero.")
        return value

    def validate_deadline(self, value):
        if value < timezone.now():
            raise serializers.ValidationError("Deadline must be in the future.")
        return value

    def create(self, validated_data):
        job = super().create(validated_data)
        logger.info(f"Job {job.id} posted by client {job.client_id}")
        return job


class JobDetailSerializer(JobSerializer):
    revisions = JobRevisionSerializer(many=True, read_only=True)
    application_count = serializers.SerializerMethodField()

    class Meta(JobSerializer.Meta):
        fields = JobSerializer.Meta.fields + ['revisions', 'application_count']

    def get_application_count(self, obj):
        return obj.applications.count()


class ApplicationSerializer(serializers.ModelSerializer):
    job_title = serializers.ReadOnlyField(source='job.title')
    worker = PublicUserSerializer(read_only=True)

    class Meta:
        model = Application
        fields = [
            'id', 'job', 'job_title', 'worker', 'proposal', 'proposed_budget', 'estimated_duration',
            'cover_letter', 'status', 'applied_at', 'shortlisted_at', 'shortlist_notes',
            'reviewed_at', 'review_notes', 'version'
        ]
        read_only_fields = [
            'job', 'status', 'applied_at', 'shortlisted_at', 'shortlist_notes',
            'reviewed_at', 'review_notes', 'version'
        ]


class ApplicationCreateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Application
        fields = ['proposal', 'proposed_budget', 'estimated_duration', 'cover_letter']

    def validate_proposed_budget(self, value):
        if value <= 0:
            raise serializers.ValidationError("Proposed budget must be greater than zero.")
        return value


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class ShortlistSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class WorkerStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=['in_progress', 'submitted'])
    progress = serializers.IntegerField(required=False, min_value=0, max_value=100)

    def transition_for(self, job):
        """Pick the job transition the requested status stands for."""
        if self.validated_data['status'] == 'submitted':
            return 'submit-work'
        if job.status == 'assigned':
            return 'start-work'
        if job.status == 'revision_requested':
            return 'resume-work'
        return 'update-progress'


class CompleteJobSerializer(serializers.Serializer):
    rating = serializers.IntegerField(required=False, min_value=1, max_value=5)
    review = serializers.CharField(required=False, allow_blank=True, default='')


class ReviewSerializer(serializers.ModelSerializer):
    reviewer = PublicUserSerializer(read_only=True)
    reviewee = PublicUserSerializer(read_only=True)
    rating = serializers.IntegerField(min_value=1, max_value=5)

    class Meta:
        model = Review
        fields = ['id', 'job', 'reviewer', 'reviewee', 'review_type', 'rating', 'comment', 'created_at']
        read_only_fields = ['job', 'review_type', 'created_at']
