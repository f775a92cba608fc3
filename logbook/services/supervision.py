"""
Supervision Service

Dashboard queries for the acting supervisor: review queues, counters and the
clearance overview of assigned students.
"""
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from django.utils import timezone

from ..identity import IdentityProvider
from ..records import DURATION_THRESHOLD, Entry, EntryStatus, SupervisorType
from ..stores import EntryStore
from ..supervisors import Supervisor, resolve_supervisor
from .aggregation import AggregationService

logger = logging.getLogger(__name__)


class DisplayStatus:
    CLEARED = 'cleared'
    READY_FOR_CLEARANCE = 'ready_for_clearance'
    AWAITING_CLEARANCE = 'awaiting_clearance'


class SupervisionService:
    """
    Usage:
        service = SupervisionService(store, identity, aggregation)
        queue = service.pending_reviews('industry')
        stats = service.supervisor_stats('industry')
    """

    def __init__(self, store: EntryStore, identity: IdentityProvider, aggregation: AggregationService):
        self.store = store
        self.identity = identity
        self.aggregation = aggregation

    def _supervisor(self, supervisor_type: Optional[str] = None) -> Supervisor:
        actor = self.identity.require_actor()
        return resolve_supervisor(actor, self.identity, supervisor_type)

    @staticmethod
    def _reviewed_by(supervisor: Supervisor, entry: Entry):
        """Timestamp of this supervisor's approval of the entry, or None."""
        if supervisor.supervisor_type == SupervisorType.INDUSTRY:
            if entry.status == EntryStatus.APPROVED and entry.industry_reviewer_id == supervisor.id:
                return entry.industry_reviewed_at
            return None
        review = entry.school_review
        if review is not None and review.is_approved and review.reviewer_id == supervisor.id:
            return review.reviewed_at
        return None

    def pending_reviews(self, supervisor_type: Optional[str] = None) -> List[Entry]:
        """Entries of assigned students waiting for this supervisor's decision."""
        supervisor = self._supervisor(supervisor_type)
        entries = self.store.list_entries_for_students(supervisor.student_ids, supervisor.review_scope)
        return [entry for entry in entries if supervisor.can_review(entry)]

    def all_student_entries(self, supervisor_type: Optional[str] = None) -> List[Entry]:
        """Every entry of assigned students that this supervisor stage can see."""
        supervisor = self._supervisor(supervisor_type)
        if supervisor.supervisor_type == SupervisorType.INDUSTRY:
            return self.store.list_entries_for_students(
                supervisor.student_ids,
                (EntryStatus.PENDING, EntryStatus.APPROVED)
            )
        entries = self.store.list_entries_for_students(supervisor.student_ids, (EntryStatus.APPROVED,))
        return [entry for entry in entries if entry.has_industry_review]

    def supervisor_stats(self, supervisor_type: Optional[str] = None) -> Dict[str, int]:
        supervisor = self._supervisor(supervisor_type)
        if not supervisor.student_ids:
            return {
                'students_count': 0,
                'pending_reviews': 0,
                'completed_reviews': 0,
                'this_week_reviews': 0,
            }

        entries = self.store.list_entries_for_students(supervisor.student_ids)
        week_ago = timezone.now() - timedelta(days=7)
        reviewed_at = [self._reviewed_by(supervisor, entry) for entry in entries]
        reviewed_at = [ts for ts in reviewed_at if ts is not None]

        return {
            'students_count': len(supervisor.student_ids),
            'pending_reviews': sum(1 for entry in entries if supervisor.can_review(entry)),
            'completed_reviews': len(reviewed_at),
            'this_week_reviews': sum(1 for ts in reviewed_at if ts >= week_ago),
        }

    def students_with_clearance(self, ready_only: bool = False) -> List[Dict[str, Any]]:
        """
        Clearance overview of every student assigned to the acting school
        supervisor.

        Args:
            ready_only: only students with at least 24 approved entries
        """
        supervisor = self._supervisor(SupervisorType.SCHOOL)
        rows = []
        for student_id in sorted(supervisor.student_ids, key=str):
            record = self.store.get_clearance_record(student_id)
            approved = self.aggregation.approved_count(student_id)
            is_ready = approved >= DURATION_THRESHOLD
            is_cleared = record is not None and record.is_cleared

            if is_cleared:
                display_status = DisplayStatus.CLEARED
            elif is_ready:
                display_status = DisplayStatus.READY_FOR_CLEARANCE
            else:
                display_status = DisplayStatus.AWAITING_CLEARANCE

            rows.append({
                'student_id': student_id,
                'clearance': record.to_dict() if record else None,
                'total_approved': approved,
                'is_ready_for_clearance': is_ready,
                'can_be_cleared': is_ready and not is_cleared,
                'display_status': display_status,
            })

        if ready_only:
            rows = [row for row in rows if row['is_ready_for_clearance']]
        return rows
