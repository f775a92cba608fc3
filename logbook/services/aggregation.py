"""
Logbook Aggregation Service

Derives per-student statistics from the full set of a student's entries.
Counts are always recomputed from the store; the optional StatsCache only
short-circuits reads between two writes.
"""
import logging
from collections import Counter
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, Optional

from ..cache import StatsCache
from ..records import DURATION_THRESHOLD, Entry, EntryStatus
from ..stores import EntryStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogbookStats:
    total: int = 0
    approved: int = 0
    pending: int = 0
    draft: int = 0

    @property
    def weeks_completed(self) -> int:
        """One approved entry counts as one week of placement."""
        return self.approved

    @property
    def duration_met(self) -> bool:
        return self.approved >= DURATION_THRESHOLD

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def compute_stats(entries: Iterable[Entry]) -> LogbookStats:
    counts = Counter(entry.status for entry in entries)
    return LogbookStats(
        total=sum(counts.values()),
        approved=counts[EntryStatus.APPROVED],
        pending=counts[EntryStatus.PENDING],
        draft=counts[EntryStatus.DRAFT],
    )


class AggregationService:
    """
    Usage:
        service = AggregationService(store, cache=DjangoStatsCache())
        stats = service.get_logbook_stats(student_id)
    """

    def __init__(self, store: EntryStore, cache: Optional[StatsCache] = None):
        self.store = store
        self.cache = cache

    def get_logbook_stats(self, student_id) -> LogbookStats:
        if self.cache is None:
            return self.refresh(student_id)

        cached = self.cache.get(student_id)
        if cached is not None:
            return LogbookStats(**cached)

        # Taken before reading the store so a write landing mid-read wins
        version = self.cache.version(student_id)
        stats = self.refresh(student_id)
        self.cache.set(student_id, stats.to_dict(), version)
        return stats

    def refresh(self, student_id) -> LogbookStats:
        """Recompute from the store, bypassing the cache."""
        return compute_stats(self.store.list_entries_by_student(student_id))

    def approved_count(self, student_id) -> int:
        """Fresh approved-entry count, read immediately before clearance writes."""
        return len(self.store.list_approved_entries(student_id))

    def invalidate(self, student_id) -> None:
        if self.cache is not None:
            self.cache.invalidate(student_id)

    def get_student_progress(self, student_id) -> Dict[str, Any]:
        """
        Detailed progress for supervisor dashboards.

        Returns:
            dict with counts by status, the latest entry date and how many
            entries each supervisor stage has signed off.
        """
        entries = self.store.list_entries_by_student(student_id)
        stats = compute_stats(entries)

        return {
            'total_entries': stats.total,
            'approved_entries': stats.approved,
            'pending_entries': stats.pending,
            'draft_entries': stats.draft,
            'weeks_completed': stats.weeks_completed,
            'last_entry_date': entries[0].date.isoformat() if entries else None,
            'industry_reviewed_entries': sum(
                1 for e in entries if e.status == EntryStatus.APPROVED and e.has_industry_review
            ),
            'school_approved_entries': sum(1 for e in entries if e.is_school_approved),
        }
