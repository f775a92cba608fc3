"""
Logbook Signals

Keeps cached stats and clearance records consistent with writes made outside
the workflow services, e.g. through the admin.
"""
import logging

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .cache import DjangoStatsCache
from .stores import DjangoEntryStore

logger = logging.getLogger(__name__)


# =====================================================
# STATS CACHE
# =====================================================

@receiver(post_save, sender='logbook.LogbookEntry')
@receiver(post_delete, sender='logbook.LogbookEntry')
def invalidate_entry_stats(sender, instance, **kwargs):
    """Drop the owner's cached stats on any entry write"""
    DjangoStatsCache().invalidate(instance.student_id)


@receiver(post_save, sender='logbook.ClearanceRecord')
def invalidate_clearance_stats(sender, instance, **kwargs):
    DjangoStatsCache().invalidate(instance.student_id)


# =====================================================
# CLEARANCE PROVISIONING
# =====================================================

@receiver(post_save, sender='core.StudentProfile')
def provision_clearance_record(sender, instance, created, raw=False, **kwargs):
    """Every new student profile starts with an empty not_cleared record"""
    if not created or raw:
        return
    DjangoEntryStore().get_or_create_clearance_record(instance.user_id)
    logger.info(f"Provisioned clearance record for student {instance.user_id}")
