"""
Signals for the Loyalty application.
Handles cache invalidation when models are updated.
"""

from django.core.cache import cache
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from loyalty.models import LoyaltySettings
from loyalty.services import settings_cache_key


@receiver([post_save, post_delete], sender=LoyaltySettings)
def clear_loyalty_settings_cache(sender, instance, **kwargs):
    """
    Drops the cached settings of the organization whenever its row is saved or deleted.
    """
    cache.delete(settings_cache_key(instance.organization_id))
