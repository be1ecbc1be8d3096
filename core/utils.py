from rest_framework import permissions
from rest_framework.response import Response
from rest_framework import status as http_status


def actor_role_for(user):
    """Role used by the transition rules: superusers always act as admin."""
    if user.is_superuser:
        return 'admin'
    return user.role


class IsClient(permissions.BasePermission):
    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        return request.user.is_client


class IsWorker(permissions.BasePermission):
    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        return request.user.is_worker


class IsAdmin(permissions.BasePermission):
    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        return request.user.is_admin


class IsClientOrAdmin(permissions.BasePermission):
    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        return request.user.is_client or request.user.is_admin


def envelope(data=None, message=None, status=http_status.HTTP_200_OK):
    body = {'success': True}
    if data is not None:
        body['data'] = data
    if message:
        body['message'] = message
    return Response(body, status=status)
