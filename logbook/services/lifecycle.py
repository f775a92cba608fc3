"""
Entry Lifecycle Service

Owns the draft -> pending -> approved state machine of a logbook entry and
decides who may trigger each transition:

    create (draft or pending)   student
    update (draft, pending)     owning student
    submit (draft -> pending)   owning student
    delete (draft)              owning student
    review                      assigned industry supervisor (pending entries)
                                assigned school supervisor (approved entries)

Every write invalidates the student's cached stats before returning.
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from django.utils import timezone

from ..exceptions import ConflictError, ForbiddenError, ValidationError
from ..identity import IdentityProvider, check_supervisor_type
from ..notifiers import Notifier
from ..records import (
    Entry, EntryStatus, ReviewAction, ReviewDecision, SupervisorType, day_name_for,
)
from ..stores import EntryStore
from ..supervisors import ensure_can_view_student, resolve_supervisor
from .aggregation import AggregationService

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 200
TASK_MAX_LENGTH = 2000
FEEDBACK_MAX_LENGTH = 2000

# Fields a student may send when creating or editing an entry
CREATE_FIELDS = ('date', 'title', 'task_done', 'media_url')
EDITABLE_FIELDS = ('title', 'task_done', 'media_url')


# =====================================================
# FIELD VALIDATION
# =====================================================

def _clean_text(value, field: str, max_length: int) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be text", field=field)
    value = value.strip()
    if not 1 <= len(value) <= max_length:
        raise ValidationError(
            f"{field} must be between 1 and {max_length} characters",
            field=field
        )
    return value


def clean_title(value) -> str:
    return _clean_text(value, 'title', TITLE_MAX_LENGTH)


def clean_task_done(value) -> str:
    return _clean_text(value, 'task_done', TASK_MAX_LENGTH)


def clean_date(value) -> date:
    """Accepts a date or an ISO 'YYYY-MM-DD' string; the day may not be in the future."""
    if isinstance(value, datetime):
        value = value.date()
    elif isinstance(value, str):
        try:
            value = date.fromisoformat(value.strip())
        except ValueError:
            raise ValidationError("date must be a valid YYYY-MM-DD date", field='date')
    elif not isinstance(value, date):
        raise ValidationError("date is required", field='date')

    if value > timezone.localdate():
        raise ValidationError("date cannot be in the future", field='date')
    return value


def clean_media_url(value) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValidationError("media_url must be a list of attachment references", field='media_url')
    refs = []
    for ref in value:
        if not isinstance(ref, str) or not ref.strip():
            raise ValidationError("media_url items must be non-empty strings", field='media_url')
        refs.append(ref.strip())
    return refs


FIELD_CLEANERS = {
    'date': clean_date,
    'title': clean_title,
    'task_done': clean_task_done,
    'media_url': clean_media_url,
}


def _reject_unknown(data: Dict[str, Any], allowed) -> None:
    for name in data:
        if name not in allowed:
            raise ValidationError(f"{name} cannot be set on a logbook entry", field=name)


# =====================================================
# SERVICE
# =====================================================

class EntryLifecycleService:
    """
    Usage:
        service = EntryLifecycleService(store, identity, aggregation, clearance, notifier)
        entry = service.create_entry({'date': '2025-03-03', 'title': ..., 'task_done': ...})
        service.submit_entry(entry.id)
    """

    def __init__(self, store: EntryStore, identity: IdentityProvider,
                 aggregation: AggregationService, clearance=None,
                 notifier: Optional[Notifier] = None):
        self.store = store
        self.identity = identity
        self.aggregation = aggregation
        self.clearance = clearance
        self.notifier = notifier or Notifier()

    # ----- access helpers -----

    def _require_student(self):
        actor = self.identity.require_actor()
        if not actor.is_student:
            raise ForbiddenError("Only students can write logbook entries")
        return actor

    def _owned_entry(self, entry_id):
        actor = self._require_student()
        entry = self.store.get_entry(entry_id)
        if entry.student_id != actor.id:
            logger.warning(f"Student {actor.id} attempted to modify entry {entry_id} of another student")
            raise ForbiddenError("You can only modify your own logbook entries")
        return actor, entry

    def _written(self, entry: Entry) -> Entry:
        self.aggregation.invalidate(entry.student_id)
        return entry

    # ----- reads -----

    def get_entry(self, entry_id) -> Entry:
        actor = self.identity.require_actor()
        entry = self.store.get_entry(entry_id)
        ensure_can_view_student(actor, self.identity, entry.student_id)
        return entry

    def list_entries(self, student_id=None, status: Optional[str] = None,
                     search: Optional[str] = None) -> List[Entry]:
        """
        Entries of one student, newest date first.

        Students always list their own; supervisors and admins name the
        student. Optional status filter and case-insensitive search over
        title and task.
        """
        actor = self.identity.require_actor()
        if student_id is None:
            if not actor.is_student:
                raise ValidationError("student_id is required", field='student_id')
            student_id = actor.id
        ensure_can_view_student(actor, self.identity, student_id)

        if status and status not in EntryStatus.ALL:
            raise ValidationError(
                f"status must be one of {', '.join(EntryStatus.ALL)}",
                field='status'
            )

        entries = self.store.list_entries_by_student(student_id)
        if status:
            entries = [e for e in entries if e.status == status]
        if search and search.strip():
            needle = search.strip().lower()
            entries = [
                e for e in entries
                if needle in e.title.lower() or needle in e.task_done.lower()
            ]
        return entries

    # ----- student transitions -----

    def create_entry(self, data: Dict[str, Any], submit: bool = False) -> Entry:
        actor = self._require_student()
        _reject_unknown(data, CREATE_FIELDS)
        if 'date' not in data:
            raise ValidationError("date is required", field='date')

        cleaned = {
            'date': clean_date(data['date']),
            'title': clean_title(data.get('title')),
            'task_done': clean_task_done(data.get('task_done')),
            'media_url': clean_media_url(data.get('media_url')),
        }
        entry = self.store.create_entry({
            'student_id': actor.id,
            'day_name': day_name_for(cleaned['date']),
            'status': EntryStatus.PENDING if submit else EntryStatus.DRAFT,
            **cleaned,
        })
        self._written(entry)
        logger.info(f"Student {actor.id} created logbook entry {entry.id} ({entry.status})")

        if submit:
            self.notifier.entry_submitted(entry)
        return entry

    def update_entry(self, entry_id, patch: Dict[str, Any]) -> Entry:
        actor, entry = self._owned_entry(entry_id)

        if 'date' in patch:
            raise ValidationError("date cannot be changed after an entry is created", field='date')
        _reject_unknown(patch, EDITABLE_FIELDS)

        if entry.status not in (EntryStatus.DRAFT, EntryStatus.PENDING):
            logger.warning(f"Refused edit of {entry.status} entry {entry_id}")
            raise ConflictError("Approved entries can no longer be edited", current_state=entry.status)

        cleaned = {name: FIELD_CLEANERS[name](value) for name, value in patch.items()}
        if not cleaned:
            return entry

        updated = self._written(self.store.update_entry(entry_id, cleaned))
        logger.info(f"Student {actor.id} updated logbook entry {entry_id}: {', '.join(sorted(cleaned))}")
        return updated

    def submit_entry(self, entry_id) -> Entry:
        actor, entry = self._owned_entry(entry_id)
        if entry.status != EntryStatus.DRAFT:
            logger.warning(f"Refused submit of {entry.status} entry {entry_id}")
            raise ConflictError("Only draft entries can be submitted", current_state=entry.status)

        updated = self._written(self.store.update_entry(entry_id, {'status': EntryStatus.PENDING}))
        logger.info(f"Student {actor.id} submitted logbook entry {entry_id}")
        self.notifier.entry_submitted(updated)
        return updated

    def delete_entry(self, entry_id) -> None:
        actor, entry = self._owned_entry(entry_id)
        if entry.status != EntryStatus.DRAFT:
            logger.warning(f"Refused delete of {entry.status} entry {entry_id}")
            raise ConflictError("Only draft entries can be deleted", current_state=entry.status)

        self.store.delete_entry(entry_id)
        self.aggregation.invalidate(entry.student_id)
        logger.info(f"Student {actor.id} deleted draft logbook entry {entry_id}")

    # ----- supervisor review -----

    def review_entry(self, entry_id, action: str, feedback: str = '',
                     supervisor_type: Optional[str] = None) -> Entry:
        """
        Record an industry or school supervisor decision on an entry.

        An industry approval moves the entry to approved and refreshes the
        clearance record; an industry rejection keeps it pending for
        revision. A school review leaves the status untouched and stores a
        structured school_review; a school approval also records the school
        sign-off on the clearance record.
        """
        actor = self.identity.require_actor()
        if action not in ReviewAction.ALL:
            raise ValidationError(
                f"action must be one of {', '.join(ReviewAction.ALL)}",
                field='action'
            )
        if supervisor_type is not None:
            check_supervisor_type(supervisor_type)

        supervisor = resolve_supervisor(actor, self.identity, supervisor_type)
        entry = self.store.get_entry(entry_id)
        supervisor.check_access(entry)

        if feedback is None:
            feedback = ''
        if not isinstance(feedback, str):
            raise ValidationError("feedback must be text", field='feedback')
        feedback = feedback.strip()
        if action == ReviewAction.REJECT and not feedback:
            raise ValidationError("Feedback is required when rejecting an entry", field='feedback')
        if len(feedback) > FEEDBACK_MAX_LENGTH:
            raise ValidationError(
                f"feedback must be at most {FEEDBACK_MAX_LENGTH} characters",
                field='feedback'
            )

        try:
            supervisor.check_reviewable(entry)
        except ConflictError:
            logger.warning(
                f"Refused {supervisor.supervisor_type} review of {entry.status} entry {entry_id}"
            )
            raise

        decision = ReviewDecision.APPROVED if action == ReviewAction.APPROVE else ReviewDecision.REJECTED
        patch = supervisor.review_patch(entry, action, feedback, timezone.now())

        # The entry and its clearance record change together or not at all
        try:
            with self.store.atomic():
                updated = self._written(self.store.update_entry(entry_id, patch))
                if self.clearance is not None and decision == ReviewDecision.APPROVED:
                    if supervisor.supervisor_type == SupervisorType.INDUSTRY:
                        self.clearance.record_industry_approval(updated.student_id)
                    else:
                        self.clearance.record_school_approval(updated.student_id, supervisor.id)
        finally:
            self.aggregation.invalidate(entry.student_id)

        logger.info(
            f"{supervisor.supervisor_type.title()} supervisor {supervisor.id} "
            f"{decision} logbook entry {entry_id}"
        )
        self.notifier.entry_reviewed(updated, decision, supervisor.supervisor_type)
        return updated
