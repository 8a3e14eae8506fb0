"""
Notifications models for the settlement ledger.
In-app notification inbox and the delivery log for order status emails.
"""

import uuid
from datetime import datetime, timedelta
from typing import ClassVar

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from apps.common.constants import NOTIFICATION_TTL_DAYS

# ===============================================================================
# IN-APP NOTIFICATIONS
# ===============================================================================


def default_expiry() -> datetime:
    return timezone.now() + timedelta(days=NOTIFICATION_TTL_DAYS)


class Notification(models.Model):
    """
    In-app inbox entry.
    Expires 30 days after creation; expired rows are not shown and can be purged.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.ForeignKey(
        'users.User',
        on_delete=models.CASCADE,
        related_name='notifications'
    )

    KIND_CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        ('info', _('Info')),
        ('order', _('Order Update')),
        ('reward', _('Reward')),
    )
    kind = models.CharField(max_length=20, choices=KIND_CHOICES, default='info')

    title = models.CharField(max_length=200)
    body = models.TextField()
    link = models.CharField(max_length=255, blank=True, help_text=_("Storefront path opened on tap"))

    read_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(default=default_expiry)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'notifications'
        verbose_name = _('Notification')
        verbose_name_plural = _('Notifications')
        ordering: ClassVar[tuple[str, ...]] = ('-created_at',)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=['user', '-created_at'], name='notificatio_user_id_7a1c4e_idx'),
            models.Index(fields=['expires_at'], name='notificatio_expires_2b9e6f_idx'),
        )

    def __str__(self) -> str:
        return f"{self.title} → {self.user_id}"

    @property
    def is_read(self) -> bool:
        return self.read_at is not None

    @property
    def is_expired(self) -> bool:
        return self.expires_at <= timezone.now()


# ===============================================================================
# EMAIL DELIVERY LOG
# ===============================================================================


class EmailLog(models.Model):
    """Delivery record for each queued order status email"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    to_addr = models.EmailField()
    subject = models.CharField(max_length=255)
    order = models.ForeignKey(
        'orders.Order',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='email_logs'
    )

    STATUS_CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        ('queued', _('Queued')),
        ('sent', _('Sent')),
        ('failed', _('Failed')),
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='queued')

    provider_id = models.CharField(
        max_length=255,
        blank=True,
        help_text=_("Message id reported by the email provider")
    )
    error = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    sent_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'email_log'
        verbose_name = _('Email Log')
        verbose_name_plural = _('Email Logs')
        ordering: ClassVar[tuple[str, ...]] = ('-created_at',)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=['status', '-created_at'], name='email_log_status_9c3d1a_idx'),
        )

    def __str__(self) -> str:
        return f"{self.subject} → {self.to_addr} ({self.status})"
