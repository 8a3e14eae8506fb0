"""
Django admin for notifications app.
"""

from __future__ import annotations

from typing import ClassVar

from django.contrib import admin

from .models import EmailLog, Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display: ClassVar[list[str]] = ('title', 'user', 'kind', 'read_at', 'expires_at', 'created_at')
    list_filter: ClassVar[list[str]] = ('kind', 'created_at')
    search_fields: ClassVar[list[str]] = ('title', 'body', 'user__email')
    readonly_fields: ClassVar[list[str]] = ('created_at',)


@admin.register(EmailLog)
class EmailLogAdmin(admin.ModelAdmin):
    list_display: ClassVar[list[str]] = ('subject', 'to_addr', 'status', 'order', 'sent_at', 'created_at')
    list_filter: ClassVar[list[str]] = ('status', 'created_at')
    search_fields: ClassVar[list[str]] = ('to_addr', 'subject', 'order__reference')
    readonly_fields: ClassVar[list[str]] = (
        'to_addr', 'subject', 'order', 'status', 'provider_id', 'error', 'created_at', 'sent_at'
    )
