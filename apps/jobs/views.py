from rest_framework.views import APIView
from rest_framework import status
from rest_framework.exceptions import NotFound
from rest_framework.permissions import AllowAny, IsAuthenticated
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from django.utils import timezone
from apps.payments.models import Payment
from apps.payments.serializers import PaymentSerializer
from core.constants import PAYMENT_ACTIVE_STATUSES
from core.utils import IsClient, IsWorker, IsClientOrAdmin, actor_role_for, envelope
from .models import Job, Application
from .serializers import (
    JobSerializer, JobDetailSerializer, ApplicationSerializer, ApplicationCreateSerializer,
    ReasonSerializer, ShortlistSerializer, WorkerStatusSerializer, CompleteJobSerializer, ReviewSerializer
)
from .services import apply_transition, apply_for_job, submit_review, update_job
import logging

logger = logging.getLogger(__name__)

TRANSITION_RESPONSES = {
    400: 'Bad Request',
    401: 'Unauthorized',
    403: 'Forbidden',
    404: 'Not Found',
    409: 'Conflict'
}


def _transition(request, entity_kind, entity_id, transition, **options):
    return apply_transition(
        entity_id,
        entity_kind,
        actor_role_for(request.user),
        request.user.id,
        transition,
        **options
    )


def _application_on_job(job_id, id):
    if not Application.objects.filter(pk=id, job_id=job_id).exists():
        raise NotFound("Application not found")
    return id


class OpenJobListView(APIView):
    permission_classes = [AllowAny]

    @swagger_auto_schema(
        operation_description="List posted jobs whose deadline has not passed.",
        manual_parameters=[
            openapi.Parameter('category', openapi.IN_QUERY, type=openapi.TYPE_STRING),
        ],
        responses={200: JobSerializer(many=True)}
    )
    def get(self, request):
        jobs = Job.objects.filter(status='posted', deadline__gte=timezone.now()).select_related('client')
        category = request.query_params.get('category')
        if category:
            jobs = jobs.filter(category__iexact=category)
        return envelope(JobSerializer(jobs, many=True, context={'request': request}).data)

class JobDetailView(APIView):
    permission_classes = [AllowAny]

    @swagger_auto_schema(
        operation_description="Retrieve a job with its revision history.",
        responses={200: JobDetailSerializer, 404: 'Not Found'}
    )
    def get(self, request, id):
        try:
            job = Job.objects.select_related('client', 'worker').get(pk=id)
        except Job.DoesNotExist:
            raise NotFound("Job not found")
        return envelope(JobDetailSerializer(job, context={'request': request}).data)

class JobApplyView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(
        operation_description="Apply to a posted job. Only verified workers may apply, once per job.",
        request_body=ApplicationCreateSerializer,
        responses={
            201: ApplicationSerializer,
            400: 'Bad Request',
            401: 'Unauthorized',
            403: 'Forbidden',
            404: 'Not Found',
            409: 'Already applied'
        }
    )
    def post(self, request, id):
        serializer = ApplicationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        application = apply_for_job(id, request.user, serializer.validated_data)
        return envelope(
            ApplicationSerializer(application).data,
            message="Application submitted successfully",
            status=status.HTTP_201_CREATED
        )

class ClientJobListCreateView(APIView):
    permission_classes = [IsAuthenticated, IsClient]

    @swagger_auto_schema(
        operation_description="List jobs posted by the authenticated client.",
        manual_parameters=[
            openapi.Parameter('status', openapi.IN_QUERY, type=openapi.TYPE_STRING),
        ],
        responses={200: JobSerializer(many=True), 401: 'Unauthorized', 403: 'Forbidden'}
    )
    def get(self, request):
        jobs = Job.objects.filter(client=request.user).select_related('client', 'worker')
        status_filter = request.query_params.get('status')
        if status_filter:
            jobs = jobs.filter(status=status_filter)
        return envelope(JobSerializer(jobs, many=True, context={'request': request}).data)

    @swagger_auto_schema(
        operation_description="Post a new job. It starts in the posted state.",
        request_body=JobSerializer,
        responses={201: JobSerializer, 400: 'Bad Request', 401: 'Unauthorized', 403: 'Forbidden'}
    )
    def post(self, request):
        serializer = JobSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        serializer.save(client=request.user, status='posted')
        return envelope(serializer.data, message="Job posted successfully", status=status.HTTP_201_CREATED)

class ClientJobApplicationsView(APIView):
    permission_classes = [IsAuthenticated, IsClient]

    @swagger_auto_schema(
        operation_description="List applications for a job (client must own the job).",
        responses={200: ApplicationSerializer(many=True), 401: 'Unauthorized', 403: 'Forbidden', 404: 'Not Found'}
    )
    def get(self, request, job_id):
        try:
            job = Job.objects.get(pk=job_id, client=request.user)
        except Job.DoesNotExist:
            raise NotFound("Job not found or not authorized")
        applications = job.applications.select_related('job', 'worker')
        return envelope(ApplicationSerializer(applications, many=True).data)

class ApplicationAcceptView(APIView):
    permission_classes = [IsAuthenticated, IsClient]

    @swagger_auto_schema(
        operation_description="Accept an application: the job is assigned to its worker "
                              "and every other open application is rejected.",
        responses={200: ApplicationSerializer, **TRANSITION_RESPONSES}
    )
    def put(self, request, job_id, id):
        application = _transition(request, 'application', _application_on_job(job_id, id), 'accept')
        return envelope(ApplicationSerializer(application).data, message="Application accepted")

class ApplicationRejectView(APIView):
    permission_classes = [IsAuthenticated, IsClient]

    @swagger_auto_schema(
        operation_description="Reject an application.",
        request_body=ReasonSerializer,
        responses={200: ApplicationSerializer, **TRANSITION_RESPONSES}
    )
    def put(self, request, job_id, id):
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        application = _transition(
            request, 'application', _application_on_job(job_id, id), 'reject', **serializer.validated_data
        )
        return envelope(ApplicationSerializer(application).data, message="Application rejected")

class ApplicationShortlistView(APIView):
    permission_classes = [IsAuthenticated, IsClientOrAdmin]

    @swagger_auto_schema(
        operation_description="Shortlist a pending application while its job is posted and not expired.",
        request_body=ShortlistSerializer,
        responses={200: ApplicationSerializer, **TRANSITION_RESPONSES}
    )
    def put(self, request, id):
        serializer = ShortlistSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        application = _transition(request, 'application', id, 'shortlist', **serializer.validated_data)
        return envelope(ApplicationSerializer(application).data, message="Candidate shortlisted successfully")

class ApplicationUnshortlistView(APIView):
    permission_classes = [IsAuthenticated, IsClientOrAdmin]

    @swagger_auto_schema(
        operation_description="Move a shortlisted application back to pending.",
        responses={200: ApplicationSerializer, **TRANSITION_RESPONSES}
    )
    def put(self, request, id):
        application = _transition(request, 'application', id, 'unshortlist')
        return envelope(ApplicationSerializer(application).data, message="Candidate removed from shortlist")

class WorkerJobListView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(
        operation_description="List jobs assigned to the authenticated worker.",
        responses={200: JobSerializer(many=True), 401: 'Unauthorized', 403: 'Forbidden'}
    )
    def get(self, request):
        jobs = Job.objects.filter(worker=request.user).select_related('client', 'worker')
        return envelope(JobSerializer(jobs, many=True, context={'request': request}).data)

class WorkerJobStatusView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(
        operation_description="Report work status. 'in_progress' starts, resumes or updates progress "
                              "depending on the job's state; 'submitted' submits the work for review.",
        request_body=WorkerStatusSerializer,
        responses={200: JobSerializer, **TRANSITION_RESPONSES}
    )
    def put(self, request, id):
        serializer = WorkerStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            job = Job.objects.get(pk=id)
        except Job.DoesNotExist:
            raise NotFound("Job not found")
        options = {}
        if serializer.validated_data.get('progress') is not None:
            options['progress'] = serializer.validated_data['progress']
        job = _transition(request, 'job', id, serializer.transition_for(job), **options)
        return envelope(
            JobSerializer(job, context={'request': request}).data,
            message=f"Job status updated to {job.status}"
        )

class WorkerJobAcceptView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(
        operation_description="Accept the job assignment.",
        responses={200: JobSerializer, **TRANSITION_RESPONSES}
    )
    def put(self, request, id):
        job = _transition(request, 'job', id, 'accept-assignment')
        return envelope(JobSerializer(job, context={'request': request}).data, message="Job assignment accepted")

class WorkerJobDeclineView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(
        operation_description="Decline the job assignment. The job goes back to posted.",
        responses={200: JobSerializer, **TRANSITION_RESPONSES}
    )
    def put(self, request, id):
        job = _transition(request, 'job', id, 'decline-assignment')
        return envelope(JobSerializer(job, context={'request': request}).data, message="Job assignment declined")

class WorkerApplicationListView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(
        operation_description="List applications submitted by the authenticated worker.",
        responses={200: ApplicationSerializer(many=True), 401: 'Unauthorized', 403: 'Forbidden'}
    )
    def get(self, request):
        applications = Application.objects.filter(worker=request.user).select_related('job', 'worker')
        return envelope(ApplicationSerializer(applications, many=True).data)

class WorkerApplicationWithdrawView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(
        operation_description="Withdraw a pending or shortlisted application.",
        responses={200: ApplicationSerializer, **TRANSITION_RESPONSES}
    )
    def delete(self, request, id):
        application = _transition(request, 'application', id, 'withdraw')
        return envelope(ApplicationSerializer(application).data, message="Application withdrawn")

class ClientJobCompleteView(APIView):
    permission_classes = [IsAuthenticated, IsClient]

    @swagger_auto_schema(
        operation_description="Approve submitted work. The job is completed, a manual payment is created "
                              "and an optional rating for the worker is recorded.",
        request_body=CompleteJobSerializer,
        responses={200: JobSerializer, **TRANSITION_RESPONSES}
    )
    def put(self, request, id):
        serializer = CompleteJobSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        job = _transition(request, 'job', id, 'complete', **serializer.validated_data)
        payment = Payment.objects.filter(job=job, status__in=PAYMENT_ACTIVE_STATUSES).first()
        review = job.reviews.filter(reviewer=request.user).first()
        return envelope({
            "job": JobSerializer(job, context={'request': request}).data,
            "payment": PaymentSerializer(payment).data if payment else None,
            "review": ReviewSerializer(review).data if review else None,
        }, message="Job marked as completed")

class ClientJobUpdateView(APIView):
    permission_classes = [IsAuthenticated, IsClient]

    @swagger_auto_schema(
        operation_description="Edit a job's details while it is still posted.",
        request_body=JobSerializer,
        responses={200: JobSerializer, **TRANSITION_RESPONSES}
    )
    def put(self, request, id):
        job = Job.objects.filter(pk=id, client=request.user).first()
        if job is None:
            raise NotFound("Job not found")
        serializer = JobSerializer(job, data=request.data, partial=True, context={'request': request})
        serializer.is_valid(raise_exception=True)
        job = update_job(id, request.user.id, serializer.validated_data)
        return envelope(JobSerializer(job, context={'request': request}).data, message="Job updated")

class WorkerJobReviewView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(
        operation_description="Rate the client of a completed job.",
        request_body=ReviewSerializer,
        responses={201: ReviewSerializer, **TRANSITION_RESPONSES}
    )
    def post(self, request, id):
        serializer = ReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = submit_review(
            id, 'worker', request.user.id, serializer.validated_data['rating'],
            serializer.validated_data.get('comment', '')
        )
        return envelope(ReviewSerializer(review).data, message="Review submitted", status=status.HTTP_201_CREATED)

class ClientJobRevisionView(APIView):
    permission_classes = [IsAuthenticated, IsClient]

    @swagger_auto_schema(
        operation_description="Send submitted work back to the worker for revision.",
        request_body=ReasonSerializer,
        responses={200: JobSerializer, **TRANSITION_RESPONSES}
    )
    def put(self, request, id):
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        job = _transition(request, 'job', id, 'request-revision', **serializer.validated_data)
        return envelope(JobSerializer(job, context={'request': request}).data, message="Revision requested")

class JobCancelView(APIView):
    permission_classes = [IsAuthenticated, IsClientOrAdmin]

    @swagger_auto_schema(
        operation_description="Cancel a job. Clients may cancel before submission; admins any time "
                              "before the job ends.",
        responses={200: JobSerializer, **TRANSITION_RESPONSES}
    )
    def put(self, request, id):
        job = _transition(request, 'job', id, 'cancel')
        return envelope(JobSerializer(job, context={'request': request}).data, message="Job cancelled")
