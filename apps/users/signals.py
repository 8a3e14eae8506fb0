"""
User signals
Auto-creation of the loyalty profile.
"""

import logging
from typing import Any

from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import User, UserProfile

logger = logging.getLogger(__name__)


@receiver(post_save, sender=User)
def create_user_profile(sender: type[User], instance: User, created: bool, **kwargs: Any) -> None:
    """Create user profile when user is created"""
    if created:
        UserProfile.objects.get_or_create(user=instance)
        logger.debug(f"👤 [Users] Profile created for user {instance.pk}")
