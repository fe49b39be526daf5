from django.contrib.auth.models import AbstractUser
from django.core.validators import RegexValidator
from django.db import models

from ..choices import UserType


class User(AbstractUser):
    user_type = models.CharField(max_length=10, choices=UserType.choices, default=UserType.CUSTOMER)
    email = models.EmailField(unique=True, db_index=True)
    phone_number = models.CharField(
        max_length=20,
        blank=True,
        null=True,
        validators=[RegexValidator(r'^\+?1?\d{9,15}$', 'Enter a valid phone number.')]
    )
    is_verified = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'
        indexes = [
            models.Index(fields=['user_type'], name='users_user_type_idx'),
            models.Index(fields=['created_at'], name='users_created_at_idx'),
        ]

    def __str__(self):
        return f"{self.username} ({self.get_user_type_display()})"

    @property
    def is_admin(self):
        return self.user_type == UserType.ADMIN or self.is_superuser

    @property
    def display_name(self):
        return self.get_full_name() or self.username


class Address(models.Model):
    address_id = models.AutoField(primary_key=True)
    user = models.ForeignKey(
        'ordering.User',
        on_delete=models.CASCADE,
        related_name='addresses'
    )
    street = models.CharField(max_length=255)
    unit = models.CharField(max_length=50, blank=True, null=True)
    city = models.CharField(max_length=100)
    province = models.CharField(max_length=50)
    postal_code = models.CharField(
        max_length=10,
        validators=[RegexValidator(r'^[A-Za-z]\d[A-Za-z][ -]?\d[A-Za-z]\d$', 'Enter a valid postal code.')]
    )
    is_default = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'addresses'
        ordering = ['-is_default', '-created_at']
        verbose_name_plural = 'addresses'

    def __str__(self):
        unit = f"{self.unit}-" if self.unit else ''
        return f"{unit}{self.street}, {self.city}, {self.province} {self.postal_code}"
