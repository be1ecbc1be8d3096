from rest_framework.views import APIView
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from core.utils import IsAdmin, IsClient, actor_role_for, envelope
from .models import Payment
from .serializers import (
    PaymentSerializer, PaymentDetailSerializer, PaymentProofSerializer, PaymentReviewSerializer
)
from .services import attach_proof, review_payment


class PaymentProofUploadView(APIView):
    permission_classes = [IsAuthenticated, IsClient]

    @swagger_auto_schema(
        operation_description="Attach a proof image (check photo) and note to a manual payment. "
                              "A pending payment moves to processing.",
        request_body=PaymentProofSerializer,
        responses={
            200: PaymentDetailSerializer,
            400: 'Bad Request',
            401: 'Unauthorized',
            403: 'Forbidden',
            404: 'Not Found',
            409: 'Conflict'
        }
    )
    def post(self, request, job_id, id):
        serializer = PaymentProofSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = attach_proof(
            payment_id=id,
            job_id=job_id,
            actor_id=request.user.id,
            **serializer.validated_data
        )
        return envelope(PaymentDetailSerializer(payment).data, message="Payment proof uploaded")

class ClientPaymentListView(APIView):
    permission_classes = [IsAuthenticated, IsClient]

    @swagger_auto_schema(
        operation_description="List payments made by the authenticated client.",
        responses={200: PaymentSerializer(many=True), 401: 'Unauthorized', 403: 'Forbidden'}
    )
    def get(self, request):
        payments = Payment.objects.filter(payer=request.user).select_related('job')
        return envelope(PaymentSerializer(payments, many=True).data)

class AdminPaymentListView(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        operation_description="List all payments, optionally filtered by status.",
        manual_parameters=[
            openapi.Parameter('status', openapi.IN_QUERY, type=openapi.TYPE_STRING),
        ],
        responses={200: PaymentSerializer(many=True), 401: 'Unauthorized', 403: 'Forbidden'}
    )
    def get(self, request):
        payments = Payment.objects.select_related('job')
        status_filter = request.query_params.get('status')
        if status_filter:
            payments = payments.filter(status=status_filter)
        return envelope(PaymentSerializer(payments, many=True).data)

class AdminPaymentReviewView(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        operation_description="Review a manual payment: release, fail, cancel or refund it.",
        request_body=PaymentReviewSerializer,
        responses={
            200: PaymentDetailSerializer,
            400: 'Bad Request',
            401: 'Unauthorized',
            403: 'Forbidden',
            404: 'Not Found',
            409: 'Conflict'
        }
    )
    def put(self, request, id):
        serializer = PaymentReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment, changed = review_payment(
            payment_id=id,
            actor_role=actor_role_for(request.user),
            actor_id=request.user.id,
            **serializer.validated_data
        )
        if not changed:
            message = "Payment already completed"
        else:
            message = f"Payment marked as {payment.status}"
        return envelope(PaymentDetailSerializer(payment).data, message=message, status=status.HTTP_200_OK)
