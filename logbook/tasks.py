"""
Celery tasks for the logbook workflow.
Scheduled from CELERY_BEAT_SCHEDULE in config/settings.py.
"""
import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(name='logbook.tasks.rotate_stats_cache')
def rotate_stats_cache():
    """
    Expire every cached stats entry at once.
    Writes already invalidate per student; this bounds the age of anything missed.
    """
    from .cache import DjangoStatsCache

    generation = DjangoStatsCache().rotate()
    return {'status': 'success', 'generation': generation}


@shared_task(name='logbook.tasks.recount_clearance_records')
def recount_clearance_records(dry_run: bool = False):
    """Refresh clearance totals from approved entries and promote records that are due."""
    from .identity import StaticIdentity
    from .services import AggregationService, ClearanceWorkflowService
    from .stores import get_entry_store

    store = get_entry_store()
    service = ClearanceWorkflowService(store, StaticIdentity(), AggregationService(store))
    result = service.recount_all(dry_run=dry_run)

    logger.info(
        f"Clearance recount: {result['checked']} records checked, {result['updated']} updated"
    )
    return {'status': 'success', **result}
