from django.urls import path
from .views import PaymentProofUploadView, ClientPaymentListView, AdminPaymentListView, AdminPaymentReviewView

urlpatterns = [
    path('client/jobs/<int:job_id>/payments/<int:id>/proof/', PaymentProofUploadView.as_view(), name='payment_proof'),
    path('client/payments/', ClientPaymentListView.as_view(), name='client_payments'),
    path('admin/payments/', AdminPaymentListView.as_view(), name='admin_payments'),
    path('admin/payments/<int:id>/review/', AdminPaymentReviewView.as_view(), name='admin_payment_review'),
]
