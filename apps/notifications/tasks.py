"""
Async Notification Tasks for the settlement ledger
Background delivery via Django-Q2.

Tasks:
- send_email_task: Send one order status email and update its EmailLog
- send_push_notification: POST a push message to the configured gateway
- purge_expired_notifications: Delete inbox rows past their expiry
"""

import logging
from typing import Any

import requests
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.utils import timezone

from apps.common.constants import PUSH_REQUEST_TIMEOUT_SECONDS
from apps.notifications.models import EmailLog, Notification

logger = logging.getLogger(__name__)


def send_email_task(
    email_log_id: str,
    to: list[str],
    subject: str,
    body_text: str,
    body_html: str | None = None,
    from_email: str | None = None,
) -> dict[str, Any]:
    """
    Send an email queued by NotificationService.send_order_status_email().

    Returns:
        Dict with success status and the provider message id when Anymail reports one
    """
    from_email = from_email or settings.DEFAULT_FROM_EMAIL

    try:
        email_log = EmailLog.objects.get(id=email_log_id)
    except EmailLog.DoesNotExist:
        logger.error(f"📧 [Email] EmailLog not found: {email_log_id}")
        return {"success": False, "error": "EmailLog not found"}

    try:
        msg = EmailMultiAlternatives(subject=subject, body=body_text, from_email=from_email, to=to)
        if body_html:
            msg.attach_alternative(body_html, "text/html")
        msg.send(fail_silently=False)
    except Exception as e:
        logger.exception(f"📧 [Email] Sending failed for {email_log_id}: {e}")
        email_log.status = "failed"
        email_log.error = str(e)
        email_log.save(update_fields=["status", "error"])
        return {"success": False, "error": str(e), "email_log_id": email_log_id}

    message_id = None
    if hasattr(msg, "anymail_status"):
        message_id = msg.anymail_status.message_id

    email_log.status = "sent"
    email_log.sent_at = timezone.now()
    email_log.provider_id = message_id or ""
    email_log.save(update_fields=["status", "sent_at", "provider_id"])

    logger.info(f"📧 [Email] Sent: {subject[:50]}... to {to[0][:3]}***")
    return {"success": True, "message_id": message_id, "email_log_id": email_log_id}


def send_push_notification(user_id: str, title: str, body: str, link: str = "") -> dict[str, Any]:
    """Deliver a push message through the gateway; the inbox row already exists"""
    gateway_url = getattr(settings, "PUSH_GATEWAY_URL", "")
    if not gateway_url:
        logger.info("🔕 [Push] No gateway configured, skipping")
        return {"success": False, "skipped": True}

    headers = {"Content-Type": "application/json"}
    token = getattr(settings, "PUSH_GATEWAY_TOKEN", "")
    if token:
        headers["Authorization"] = f"Bearer {token}"

    try:
        response = requests.post(
            gateway_url,
            json={"userId": user_id, "title": title, "body": body, "url": link},
            headers=headers,
            timeout=PUSH_REQUEST_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
    except requests.RequestException as e:
        logger.warning(f"🔕 [Push] Delivery to user {user_id} failed: {e}")
        return {"success": False, "error": str(e)}

    logger.info(f"📲 [Push] Delivered to user {user_id}: {title}")
    return {"success": True, "status_code": response.status_code}


def purge_expired_notifications() -> dict[str, Any]:
    deleted, _ = Notification.objects.filter(expires_at__lte=timezone.now()).delete()
    logger.info(f"🧹 [Notify] Purged {deleted} expired notifications")
    return {"deleted": deleted}
