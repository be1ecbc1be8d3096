from django.db import models
from django.contrib.auth.models import AbstractUser
from core.constants import USER_ROLE_CHOICES


class User(AbstractUser):
    email = models.EmailField(blank=True, null=True, unique=True)
    phone_number = models.CharField(max_length=15, blank=True, null=True, unique=True)
    role = models.CharField(max_length=10, choices=USER_ROLE_CHOICES, default='worker')
    is_verified = models.BooleanField(default=False)

    @property
    def is_client(self):
        return self.role == 'client'

    @property
    def is_worker(self):
        return self.role == 'worker'

    @property
    def is_admin(self):
        return self.is_superuser or self.role == 'admin'

    @property
    def display_name(self):
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.username

    @staticmethod
    def get_by_identifier(identifier):
        return User.objects.filter(
            models.Q(email__iexact=identifier) |
            models.Q(phone_number=identifier) |
            models.Q(username__iexact=identifier)
        ).first()

    def __str__(self):
        return f"{self.username} ({self.role})"
