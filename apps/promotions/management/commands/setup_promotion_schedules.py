"""
Management command to register the promotion housekeeping schedules with Django-Q2.
"""

from typing import Any

from django.core.management.base import BaseCommand, CommandError, CommandParser
from django_q.models import Schedule

from apps.promotions.tasks import SCHEDULED_TASKS, setup_promotion_scheduled_tasks


class Command(BaseCommand):
    help = 'Set up scheduled tasks for voucher cleanup and notification purge'

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument(
            '--force',
            action='store_true',
            help='Delete and recreate existing schedules',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        self.stdout.write('🚀 Setting up promotion scheduled tasks...')

        if options.get('force'):
            deleted, _ = Schedule.objects.filter(name__in=SCHEDULED_TASKS).delete()
            self.stdout.write(self.style.WARNING(f'  - Removed {deleted} existing schedules'))

        try:
            results = setup_promotion_scheduled_tasks()
        except Exception as e:
            raise CommandError(f'Failed to set up scheduled tasks: {e}') from e

        for task_name, result in results.items():
            if result == 'already_exists':
                self.stdout.write(self.style.WARNING(f'  - {task_name}: Task already exists (skipped)'))
            else:
                self.stdout.write(self.style.SUCCESS(f'  - {task_name}: Created successfully'))

        self.stdout.write(self.style.SUCCESS('✅ Promotion schedules ready'))
