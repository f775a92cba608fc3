"""
Logbook workflow services.

build_services() wires the engines around one store, one identity and one
notifier for the duration of a request.
"""
from typing import NamedTuple, Optional

from ..cache import DjangoStatsCache, StatsCache
from ..identity import IdentityProvider
from ..notifiers import InAppNotifier, Notifier
from ..stores import EntryStore, get_entry_store
from .aggregation import AggregationService, LogbookStats, compute_stats
from .clearance import ClearanceData, ClearanceWorkflowService
from .lifecycle import EntryLifecycleService
from .requirements import ClearanceRequirement, Evaluation, evaluate
from .supervision import SupervisionService

__all__ = [
    'AggregationService', 'ClearanceData', 'ClearanceRequirement', 'ClearanceWorkflowService',
    'EntryLifecycleService', 'Evaluation', 'LogbookServices', 'LogbookStats',
    'SupervisionService', 'build_services', 'compute_stats', 'evaluate',
]


class LogbookServices(NamedTuple):
    lifecycle: EntryLifecycleService
    aggregation: AggregationService
    clearance: ClearanceWorkflowService
    supervision: SupervisionService


def build_services(identity: IdentityProvider, store: Optional[EntryStore] = None,
                   cache: Optional[StatsCache] = None,
                   notifier: Optional[Notifier] = None) -> LogbookServices:
    """Defaults: the configured store, the Django cache and in-app notifications."""
    store = store or get_entry_store()
    cache = cache if cache is not None else DjangoStatsCache()
    notifier = notifier or InAppNotifier()

    aggregation = AggregationService(store, cache)
    clearance = ClearanceWorkflowService(store, identity, aggregation, notifier)
    return LogbookServices(
        lifecycle=EntryLifecycleService(store, identity, aggregation, clearance, notifier),
        aggregation=aggregation,
        clearance=clearance,
        supervision=SupervisionService(store, identity, aggregation),
    )
