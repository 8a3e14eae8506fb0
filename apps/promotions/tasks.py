"""
Promotion background tasks.

Django-Q2 tasks for voucher housekeeping and inbox cleanup, plus the
schedule registration used by the setup_promotion_schedules command.
"""

from __future__ import annotations

import logging
from typing import Any

from django_q.models import Schedule
from django_q.tasks import schedule

from apps.promotions.services import VoucherLedgerService

logger = logging.getLogger(__name__)

CLUSTER_NAME = "ledger-cluster"

SCHEDULED_TASKS: dict[str, dict[str, Any]] = {
    "voucher-cleanup": {
        "func": "apps.promotions.tasks.cleanup_vouchers_task",
        "schedule_type": Schedule.CRON,
        "cron": "0 2 * * *",  # 2 AM daily
    },
    "notification-purge": {
        "func": "apps.notifications.tasks.purge_expired_notifications",
        "schedule_type": Schedule.CRON,
        "cron": "30 2 * * *",
    },
}


def cleanup_vouchers_task() -> dict[str, Any]:
    """Deactivate expired and fully used vouchers"""
    logger.info("🧹 [Voucher] Starting voucher cleanup")
    result = VoucherLedgerService.cleanup_vouchers()
    return {"success": True, **result}


def setup_promotion_scheduled_tasks() -> dict[str, str]:
    """Register the promotion schedules once; existing ones are left alone"""
    existing = set(Schedule.objects.filter(name__in=SCHEDULED_TASKS).values_list("name", flat=True))

    results: dict[str, str] = {}
    for name, config in SCHEDULED_TASKS.items():
        if name in existing:
            results[name] = "already_exists"
            continue
        options = {key: value for key, value in config.items() if key != "func"}
        schedule(config["func"], name=name, cluster=CLUSTER_NAME, **options)
        results[name] = "created"
    return results
