"""
User models for the settlement ledger
Email-based storefront accounts with a loyalty profile.
"""

from __future__ import annotations

from typing import Any, ClassVar

from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from django.utils.translation import gettext_lazy as _


class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication"""

    def create_user(self, email: str, password: str | None = None, **extra_fields: Any) -> User:
        """Create and return a regular user with email and password"""
        if not email:
            raise ValueError('The Email field must be set')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email: str, password: str | None = None, **extra_fields: Any) -> User:
        """Create and return a superuser with email and password"""
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('staff_role', 'admin')

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


class User(AbstractUser):
    """
    Storefront user.
    Customers have an empty staff role; shop staff carry one of STAFF_ROLE_CHOICES.
    """

    STAFF_ROLE_CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        ('admin', _('Administrator')),
        ('support', _('Support Agent')),
    )

    username = None  # Remove username field, using email instead
    email = models.EmailField(_('email address'), unique=True)
    phone = models.CharField(max_length=20, blank=True)

    staff_role = models.CharField(
        max_length=20,
        choices=STAFF_ROLE_CHOICES,
        blank=True,
        default='',
        help_text=_('Staff role for shop staff. Leave empty for customers.')
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS: ClassVar[list[str]] = []

    class Meta:
        db_table = 'users'
        verbose_name = _('User')
        verbose_name_plural = _('Users')

    def __str__(self) -> str:
        return self.email

    @property
    def is_admin_user(self) -> bool:
        """Only administrators may drive order status and payment changes"""
        if not self.is_active:
            return False
        return bool(self.is_superuser or (self.is_staff and self.staff_role == 'admin'))

    @property
    def display_name(self) -> str:
        profile = getattr(self, 'profile', None)
        if profile is not None and profile.display_name:
            return profile.display_name
        return self.get_full_name() or self.email


class UserProfile(models.Model):
    """
    Loyalty profile.

    ``loyalty_points`` and ``spin_credits`` are shared counters: only
    LoyaltyService mutates them, always through single F() updates.
    Never call ``save()`` on a profile to change them.
    """

    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name='profile'
    )

    display_name = models.CharField(max_length=150, blank=True)
    loyalty_points = models.PositiveIntegerField(default=0)
    spin_credits = models.PositiveIntegerField(
        default=0,
        help_text=_('Unused spin-wheel unlocks granted by the Welcome Spin tier')
    )
    email_notifications = models.BooleanField(default=True)
    push_notifications = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'user_profiles'
        verbose_name = _('User Profile')
        verbose_name_plural = _('User Profiles')

    def __str__(self) -> str:
        return f"Profile for {self.user.email}"
