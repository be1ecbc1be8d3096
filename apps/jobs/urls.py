from django.urls import path
from .views import (
    OpenJobListView, JobDetailView, JobApplyView, ClientJobListCreateView, ClientJobApplicationsView,
    ApplicationAcceptView, ApplicationRejectView, ApplicationShortlistView, ApplicationUnshortlistView,
    WorkerJobListView, WorkerJobStatusView, WorkerJobAcceptView, WorkerJobDeclineView,
    WorkerApplicationListView, WorkerApplicationWithdrawView, ClientJobCompleteView,
    ClientJobRevisionView, JobCancelView, ClientJobUpdateView, WorkerJobReviewView
)

urlpatterns = [
    path('jobs/', OpenJobListView.as_view(), name='open_jobs'),
    path('jobs/<int:id>/', JobDetailView.as_view(), name='job_details'),
    path('jobs/<int:id>/apply/', JobApplyView.as_view(), name='job_apply'),
    path('client/jobs/', ClientJobListCreateView.as_view(), name='client_jobs'),
    path('client/jobs/<int:id>/', ClientJobUpdateView.as_view(), name='client_job_update'),
    path('client/jobs/<int:job_id>/applications/', ClientJobApplicationsView.as_view(), name='job_applications'),
    path('client/jobs/<int:job_id>/applications/<int:id>/accept/', ApplicationAcceptView.as_view(), name='application_accept'),
    path('client/jobs/<int:job_id>/applications/<int:id>/reject/', ApplicationRejectView.as_view(), name='application_reject'),
    path('client/jobs/<int:id>/complete/', ClientJobCompleteView.as_view(), name='job_complete'),
    path('client/jobs/<int:id>/request-revision/', ClientJobRevisionView.as_view(), name='job_request_revision'),
    path('client/jobs/<int:id>/cancel/', JobCancelView.as_view(), name='job_cancel'),
    path('admin/applications/<int:id>/shortlist/', ApplicationShortlistView.as_view(), name='application_shortlist'),
    path('admin/applications/<int:id>/unshortlist/', ApplicationUnshortlistView.as_view(), name='application_unshortlist'),
    path('worker/jobs/', WorkerJobListView.as_view(), name='worker_jobs'),
    path('worker/jobs/<int:id>/status/', WorkerJobStatusView.as_view(), name='worker_job_status'),
    path('worker/jobs/<int:id>/accept/', WorkerJobAcceptView.as_view(), name='worker_job_accept'),
    path('worker/jobs/<int:id>/decline/', WorkerJobDeclineView.as_view(), name='worker_job_decline'),
    path('worker/jobs/<int:id>/review/', WorkerJobReviewView.as_view(), name='worker_job_review'),
    path('worker/applications/', WorkerApplicationListView.as_view(), name='worker_applications'),
    path('worker/applications/<int:id>/', WorkerApplicationWithdrawView.as_view(), name='worker_application_withdraw'),
]
