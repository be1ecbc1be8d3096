from django.urls import path
from .views import AuthLoginView, UserProfileView

urlpatterns = [
    path('auth/login/', AuthLoginView.as_view(), name='auth_login'),
    path('users/profile/', UserProfileView.as_view(), name='user_profile'),
]
