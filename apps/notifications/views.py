from rest_framework.views import APIView
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from core.utils import envelope
from .models import Notification
from .serializers import NotificationSerializer


class NotificationListView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="List notifications of the authenticated user, newest first.",
        manual_parameters=[
            openapi.Parameter('unread', openapi.IN_QUERY, type=openapi.TYPE_BOOLEAN,
                              description='Only return unread notifications'),
        ],
        responses={200: NotificationSerializer(many=True), 401: 'Unauthorized'}
    )
    def get(self, request):
        notifications = Notification.objects.filter(recipient=request.user)
        if request.query_params.get('unread') in ('1', 'true', 'True'):
            notifications = notifications.filter(is_read=False)
        return envelope(NotificationSerializer(notifications, many=True).data)


class NotificationReadView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Mark a notification as read.",
        responses={200: NotificationSerializer, 401: 'Unauthorized', 404: 'Not Found'}
    )
    def put(self, request, id):
        try:
            notification = Notification.objects.get(pk=id, recipient=request.user)
        except Notification.DoesNotExist:
            raise NotFound("Notification not found")
        notification.mark_as_read()
        return envelope(NotificationSerializer(notification).data, message="Notification marked as read")
