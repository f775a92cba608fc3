"""
Clearance Workflow Service

Keeps each student's clearance record in step with their approved entries:

    not_cleared --(industry approval, >= 24 approved)--> ready_for_school_approval
    ready_for_school_approval --(school approval)--> cleared

Totals are always re-read from the store right before a write, so repeating
an approval never inflates them and a cleared record never regresses.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from django.utils import timezone

from ..exceptions import ForbiddenError
from ..identity import IdentityProvider
from ..notifiers import Notifier
from ..records import DURATION_THRESHOLD, Clearance, ClearanceStatus, SupervisorType
from ..stores import EntryStore
from ..supervisors import ensure_can_view_student, resolve_supervisor
from .aggregation import AggregationService, LogbookStats
from .requirements import ClearanceRequirement, evaluate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClearanceData:
    requirements: Tuple[ClearanceRequirement, ...]
    overall_progress: int
    is_eligible: bool
    clearance_status: str
    stats: LogbookStats
    record: Optional[Clearance] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'requirements': [req.to_dict() for req in self.requirements],
            'overall_progress': self.overall_progress,
            'is_eligible': self.is_eligible,
            'clearance_status': self.clearance_status,
            'stats': self.stats.to_dict(),
            'clearance': self.record.to_dict() if self.record else None,
        }


def _promoted_status(record: Clearance, approved: int, industry_approved: bool) -> str:
    """Status after a recount. Only ever moves forward."""
    if (record.status == ClearanceStatus.NOT_CLEARED
            and industry_approved and approved >= DURATION_THRESHOLD):
        return ClearanceStatus.READY_FOR_SCHOOL_APPROVAL
    return record.status


class ClearanceWorkflowService:
    """
    Usage:
        service = ClearanceWorkflowService(store, identity, aggregation, notifier)
        service.record_industry_approval(student_id)
        data = service.get_clearance_data(student_id)
    """

    def __init__(self, store: EntryStore, identity: IdentityProvider,
                 aggregation: AggregationService, notifier: Optional[Notifier] = None):
        self.store = store
        self.identity = identity
        self.aggregation = aggregation
        self.notifier = notifier or Notifier()

    def _save(self, student_id, patch: Dict[str, Any]) -> Clearance:
        record = self.store.update_clearance_record(student_id, patch)
        self.aggregation.invalidate(student_id)
        return record

    # ----- workflow hooks -----

    def record_industry_approval(self, student_id) -> Clearance:
        """Called after every industry approval of one of the student's entries."""
        approved = self.aggregation.approved_count(student_id)
        record = self.store.get_or_create_clearance_record(student_id)

        status = _promoted_status(record, approved, industry_approved=True)
        record = self._save(student_id, {
            'industry_supervisor_approved': True,
            'total_weeks_completed': approved,
            'total_entries_approved': approved,
            'status': status,
        })
        logger.info(
            f"Industry approval recorded for student {student_id}: "
            f"{approved} approved entries, status {record.status}"
        )
        return record

    def record_school_approval(self, student_id, supervisor_id) -> Clearance:
        """Called after a school supervisor approves one of the student's entries."""
        approved = self.aggregation.approved_count(student_id)
        record = self.store.get_or_create_clearance_record(student_id)
        now = timezone.now()

        status = _promoted_status(record, approved, record.industry_supervisor_approved)
        patch = {
            'school_supervisor_approved': True,
            'school_supervisor_id': supervisor_id,
            'school_approval_date': now,
            'total_weeks_completed': approved,
            'total_entries_approved': approved,
        }
        newly_cleared = status == ClearanceStatus.READY_FOR_SCHOOL_APPROVAL
        if newly_cleared:
            patch['status'] = ClearanceStatus.CLEARED
            patch['completed_at'] = now
        elif status != record.status:
            patch['status'] = status

        record = self._save(student_id, patch)
        logger.info(f"School approval recorded for student {student_id} by supervisor {supervisor_id}")
        if newly_cleared:
            logger.info(f"Student {student_id} cleared")
            self.notifier.student_cleared(student_id)
        return record

    # ----- explicit operations -----

    def mark_student_as_cleared(self, student_id) -> Clearance:
        """
        Final sign-off by the student's assigned school supervisor.

        Forces both approvals and the cleared status. Calling it again on a
        cleared record changes nothing. A student without a record gets one
        with the full 24 weeks recorded.
        """
        actor = self.identity.require_actor()
        supervisor = resolve_supervisor(actor, self.identity, SupervisorType.SCHOOL)
        if not supervisor.supervises(student_id):
            logger.warning(f"School supervisor {supervisor.id} attempted to clear unassigned student {student_id}")
            raise ForbiddenError("You are not assigned to this student")

        now = timezone.now()
        record = self.store.get_clearance_record(student_id)
        if record is None:
            record = self.store.get_or_create_clearance_record(student_id, defaults={
                'total_weeks_completed': DURATION_THRESHOLD,
                'total_entries_approved': DURATION_THRESHOLD,
            })

        was_cleared = record.is_cleared
        record = self._save(student_id, {
            'industry_supervisor_approved': True,
            'school_supervisor_approved': True,
            'school_supervisor_id': record.school_supervisor_id or supervisor.id,
            'school_approval_date': record.school_approval_date or now,
            'status': ClearanceStatus.CLEARED,
            'completed_at': record.completed_at or now,
        })

        if not was_cleared:
            logger.info(f"School supervisor {supervisor.id} cleared student {student_id}")
            self.notifier.student_cleared(student_id)
        return record

    def provision_record(self, student_id) -> Clearance:
        """Pre-create an empty not_cleared record, e.g. when a student profile is created."""
        return self.store.get_or_create_clearance_record(student_id)

    def recount(self, student_id, dry_run: bool = False) -> Optional[Dict[str, Any]]:
        """
        Refresh stored totals from the approved entries and promote the
        record when it is due. Approval flags are left alone and cleared
        records are final.

        Returns:
            the changed fields (empty when the record was current), or None
            when the student has no clearance record
        """
        record = self.store.get_clearance_record(student_id)
        if record is None:
            return None
        if record.is_cleared:
            return {}

        approved = self.aggregation.approved_count(student_id)
        patch = {
            'total_weeks_completed': approved,
            'total_entries_approved': approved,
            'status': _promoted_status(record, approved, record.industry_supervisor_approved),
        }
        changed = {k: v for k, v in patch.items() if getattr(record, k) != v}
        if changed and not dry_run:
            self._save(student_id, changed)
            logger.info(f"Recounted clearance record of student {student_id}: {changed}")
        return changed

    def recount_all(self, student_ids=None, dry_run: bool = False) -> Dict[str, int]:
        """Recount every student that owns entries or a clearance record."""
        if student_ids is None:
            student_ids = self.store.list_clearance_student_ids()

        checked = updated = 0
        for student_id in student_ids:
            changed = self.recount(student_id, dry_run=dry_run)
            if changed is None:
                continue
            checked += 1
            if changed:
                updated += 1
        return {'checked': checked, 'updated': updated}

    # ----- reads -----

    def get_logbook_stats(self, student_id) -> LogbookStats:
        actor = self.identity.require_actor()
        ensure_can_view_student(actor, self.identity, student_id)
        return self.aggregation.get_logbook_stats(student_id)

    def get_student_progress(self, student_id) -> Dict[str, Any]:
        actor = self.identity.require_actor()
        ensure_can_view_student(actor, self.identity, student_id)
        return self.aggregation.get_student_progress(student_id)

    def get_clearance_data(self, student_id) -> ClearanceData:
        """Requirement checklist of a student. Never creates a clearance record."""
        actor = self.identity.require_actor()
        ensure_can_view_student(actor, self.identity, student_id)

        stats = self.aggregation.get_logbook_stats(student_id)
        record = self.store.get_clearance_record(student_id)
        evaluation = evaluate(stats, record)

        return ClearanceData(
            requirements=evaluation.requirements,
            overall_progress=evaluation.overall_progress,
            is_eligible=evaluation.is_eligible,
            clearance_status=record.status if record else ClearanceStatus.NOT_CLEARED,
            stats=stats,
            record=record,
        )
