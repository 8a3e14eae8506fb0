"""
Notification Services for the settlement ledger
In-app inbox rows, push delivery and order status emails.
Every public method here is called inside a best-effort boundary by its caller.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.template.loader import render_to_string
from django_q.tasks import async_task

from apps.common.utils import mask_email
from apps.notifications.models import EmailLog, Notification

if TYPE_CHECKING:
    from apps.orders.models import Order

logger = logging.getLogger(__name__)


# ===============================================================================
# MESSAGE BUILDERS
# ===============================================================================


def build_order_status_context(order: Order) -> dict[str, Any]:
    """Template context for the status email: items and the delivery street"""
    items = [
        {
            "title": item.title,
            "price": item.price,
            "quantity": item.quantity,
            "optionName": item.option_name,
        }
        for item in order.items.all()
    ]
    return {
        "reference": order.reference,
        "status": order.get_status_display(),
        "items": items,
        "total_amount": order.total_amount,
        "delivery_fee": order.delivery_fee,
        "deliveryAddress": order.delivery_street,
    }


def order_recipient(order: Order) -> str:
    if order.user_id and order.user.email:
        return order.user.email
    address = order.shipping_address if isinstance(order.shipping_address, dict) else {}
    return address.get("email", "")


# ===============================================================================
# NOTIFICATION SERVICE
# ===============================================================================


class NotificationService:
    """Builds messages and hands them to the inbox, the push gateway and the email backend"""

    @staticmethod
    def notify_user(
        user_id: Any,
        *,
        title: str,
        body: str,
        link: str = "",
        kind: str = "info",
    ) -> Notification:
        """Create the inbox row and queue a push when a gateway is configured"""
        notification = Notification.objects.create(
            user_id=user_id,
            kind=kind,
            title=title,
            body=body,
            link=link,
        )
        logger.info(f"🔔 [Notify] {kind} notification for user {user_id}: {title}")

        if getattr(settings, "PUSH_GATEWAY_URL", ""):
            async_task(
                "apps.notifications.tasks.send_push_notification",
                user_id=str(user_id),
                title=title,
                body=body,
                link=link,
                task_name=f"push:{kind}:{str(user_id)[:8]}",
            )
        return notification

    @classmethod
    def notify_order_status(cls, order: Order) -> Notification | None:
        if order.user_id is None:
            logger.info(f"🔔 [Notify] Guest order {order.reference}, no in-app notification")
            return None
        return cls.notify_user(
            order.user_id,
            title="Order Update",
            body=f"Your order #{order.reference} status has been updated to: {order.get_status_display()}",
            link=f"/account/orders/{order.pk}",
            kind="order",
        )

    @staticmethod
    def send_order_status_email(order: Order) -> EmailLog | None:
        """Render the status email and queue it for delivery"""
        recipient = order_recipient(order)
        if not recipient:
            logger.warning(f"📧 [Email] No recipient for order {order.reference}, skipping status email")
            return None

        context = build_order_status_context(order)
        subject = f"Your order #{order.reference} is now {context['status']}"
        body_text = render_to_string("notifications/emails/order_status.txt", context)
        body_html = render_to_string("notifications/emails/order_status.html", context)

        email_log = EmailLog.objects.create(to_addr=recipient, subject=subject, order=order)
        async_task(
            "apps.notifications.tasks.send_email_task",
            email_log_id=str(email_log.id),
            to=[recipient],
            subject=subject,
            body_text=body_text,
            body_html=body_html,
            task_name=f"email:order_status:{order.reference}",
        )
        logger.info(f"📧 [Email] Queued status email for order {order.reference} to {mask_email(recipient)}")
        return email_log
