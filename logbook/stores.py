"""
Entry store adapters.

`EntryStore` is the persistence contract used by the workflow services.
Two interchangeable implementations exist:

    DjangoEntryStore    - LogbookEntry / ClearanceRecord tables
    InMemoryEntryStore  - process-local fixture data

The implementation is chosen once per process from
settings.LOGBOOK_STORE_BACKEND via get_entry_store().
"""
import itertools
import logging
import threading
from contextlib import contextmanager
from abc import ABC, abstractmethod
from dataclasses import fields, replace
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django.utils.module_loading import import_string

from .exceptions import NotFoundError
from .records import Clearance, Entry, EntryStatus, SchoolReview

logger = logging.getLogger(__name__)

ENTRY_FIELDS = frozenset(f.name for f in fields(Entry)) - {'id', 'created_at', 'updated_at'}
CLEARANCE_FIELDS = frozenset(f.name for f in fields(Clearance)) - {'id', 'student_id', 'created_at', 'updated_at'}


def _copy(entry: Entry) -> Entry:
    return replace(entry, media_url=list(entry.media_url))


def _check_keys(patch: Dict[str, Any], allowed: Iterable[str], kind: str) -> None:
    unknown = set(patch) - set(allowed)
    if unknown:
        raise KeyError(f"Unknown {kind} field(s): {', '.join(sorted(unknown))}")


class EntryStore(ABC):
    """Persistence contract for logbook entries and clearance records."""

    @abstractmethod
    def create_entry(self, data: Dict[str, Any]) -> Entry:
        ...

    @abstractmethod
    def get_entry(self, entry_id) -> Entry:
        """Raises NotFoundError when the id does not exist."""

    @abstractmethod
    def list_entries_by_student(self, student_id) -> List[Entry]:
        """All entries of a student, newest date first."""

    @abstractmethod
    def update_entry(self, entry_id, patch: Dict[str, Any]) -> Entry:
        ...

    @abstractmethod
    def delete_entry(self, entry_id) -> None:
        ...

    @abstractmethod
    def list_entries_for_students(self, student_ids: Iterable[Any],
                                  statuses: Optional[Iterable[str]] = None) -> List[Entry]:
        """Entries of several students, newest created first."""

    def list_approved_entries(self, student_id) -> List[Entry]:
        return [e for e in self.list_entries_by_student(student_id) if e.status == EntryStatus.APPROVED]

    @abstractmethod
    def get_clearance_record(self, student_id) -> Optional[Clearance]:
        ...

    @abstractmethod
    def get_or_create_clearance_record(self, student_id,
                                       defaults: Optional[Dict[str, Any]] = None) -> Clearance:
        ...

    @abstractmethod
    def update_clearance_record(self, student_id, patch: Dict[str, Any]) -> Clearance:
        """Raises NotFoundError when the student has no record yet."""

    @abstractmethod
    def list_clearance_student_ids(self) -> List[Any]:
        """Students that own at least one entry or a clearance record."""

    @abstractmethod
    def atomic(self):
        """Context manager; writes made inside it are undone if it exits with an error."""


# =====================================================
# IN-MEMORY STORE
# =====================================================

class InMemoryEntryStore(EntryStore):
    """
    Process-local store.

    Records are copied on the way in and out so callers never share mutable
    state with the store. A single lock serialises writes.
    """

    def __init__(self, entries: Iterable[Entry] = (), clearances: Iterable[Clearance] = ()):
        self._lock = threading.Lock()
        self._entries: Dict[Any, Entry] = {}
        self._clearances: Dict[Any, Clearance] = {}
        seeded = list(entries)
        numeric_ids = [e.id for e in seeded if isinstance(e.id, int)]
        self._ids = itertools.count(max(numeric_ids, default=0) + 1)
        for entry in seeded:
            if entry.id is None:
                entry = replace(entry, id=next(self._ids))
            self._entries[entry.id] = _copy(entry)
        for record in clearances:
            self._clearances[record.student_id] = replace(record)

    def create_entry(self, data):
        _check_keys(data, ENTRY_FIELDS, 'entry')
        now = timezone.now()
        with self._lock:
            entry = _copy(Entry(id=next(self._ids), created_at=now, updated_at=now, **data))
            self._entries[entry.id] = entry
            return _copy(entry)

    def get_entry(self, entry_id):
        try:
            return _copy(self._entries[entry_id])
        except KeyError:
            raise NotFoundError(f"Logbook entry {entry_id} not found")

    def list_entries_by_student(self, student_id):
        entries = [_copy(e) for e in self._entries.values() if e.student_id == student_id]
        return sorted(entries, key=lambda e: (e.date, e.id), reverse=True)

    def update_entry(self, entry_id, patch):
        _check_keys(patch, ENTRY_FIELDS, 'entry')
        with self._lock:
            current = self._entries.get(entry_id)
            if current is None:
                raise NotFoundError(f"Logbook entry {entry_id} not found")
            updated = replace(current, updated_at=timezone.now(), **patch)
            self._entries[entry_id] = updated
            return _copy(updated)

    def delete_entry(self, entry_id):
        with self._lock:
            if self._entries.pop(entry_id, None) is None:
                raise NotFoundError(f"Logbook entry {entry_id} not found")

    def list_entries_for_students(self, student_ids, statuses=None):
        student_ids = set(student_ids)
        statuses = set(statuses) if statuses is not None else None
        entries = [
            _copy(e) for e in self._entries.values()
            if e.student_id in student_ids and (statuses is None or e.status in statuses)
        ]
        return sorted(entries, key=lambda e: e.id, reverse=True)

    def get_clearance_record(self, student_id):
        record = self._clearances.get(student_id)
        return replace(record) if record else None

    def get_or_create_clearance_record(self, student_id, defaults=None):
        defaults = defaults or {}
        _check_keys(defaults, CLEARANCE_FIELDS, 'clearance')
        with self._lock:
            record = self._clearances.get(student_id)
            if record is None:
                now = timezone.now()
                record = Clearance(
                    student_id=student_id,
                    id=student_id,
                    created_at=now,
                    updated_at=now,
                    **defaults
                )
                self._clearances[student_id] = record
                logger.info(f"Created clearance record for student {student_id}")
            return replace(record)

    def update_clearance_record(self, student_id, patch):
        _check_keys(patch, CLEARANCE_FIELDS, 'clearance')
        with self._lock:
            current = self._clearances.get(student_id)
            if current is None:
                raise NotFoundError(f"No clearance record for student {student_id}")
            updated = replace(current, updated_at=timezone.now(), **patch)
            self._clearances[student_id] = updated
            return replace(updated)

    def list_clearance_student_ids(self):
        student_ids = {e.student_id for e in self._entries.values()} | set(self._clearances)
        return sorted(student_ids, key=str)

    @contextmanager
    def atomic(self):
        """
        Snapshot both tables and restore them if the block raises.
        Records are replaced, never mutated, so shallow copies are enough.
        Writes from other threads during the block are rolled back too.
        """
        with self._lock:
            entries, clearances = dict(self._entries), dict(self._clearances)
        try:
            yield
        except Exception:
            with self._lock:
                self._entries, self._clearances = entries, clearances
            raise


# =====================================================
# DATABASE STORE
# =====================================================

class DjangoEntryStore(EntryStore):
    """Store backed by the LogbookEntry and ClearanceRecord models."""

    @staticmethod
    def entry_from_model(obj) -> Entry:
        school_review = None
        if obj.school_decision:
            school_review = SchoolReview(
                decision=obj.school_decision,
                feedback=obj.school_feedback,
                reviewer_id=obj.school_reviewer_id,
                reviewed_at=obj.school_reviewed_at,
            )
        return Entry(
            id=obj.pk,
            student_id=obj.student_id,
            date=obj.date,
            day_name=obj.day_name,
            title=obj.title,
            task_done=obj.task_done,
            media_url=list(obj.media_url or []),
            status=obj.status,
            comments_from_supervisor=obj.comments_from_supervisor,
            industry_reviewer_id=obj.industry_reviewer_id,
            industry_reviewed_at=obj.industry_reviewed_at,
            school_review=school_review,
            created_at=obj.created_at,
            updated_at=obj.updated_at,
        )

    @staticmethod
    def clearance_from_model(obj) -> Clearance:
        return Clearance(
            id=obj.pk,
            student_id=obj.student_id,
            industry_supervisor_approved=obj.industry_supervisor_approved,
            school_supervisor_approved=obj.school_supervisor_approved,
            school_supervisor_id=obj.school_supervisor_id,
            school_approval_date=obj.school_approval_date,
            total_weeks_completed=obj.total_weeks_completed,
            total_entries_approved=obj.total_entries_approved,
            status=obj.status,
            completed_at=obj.completed_at,
            created_at=obj.created_at,
            updated_at=obj.updated_at,
        )

    @staticmethod
    def _entry_columns(patch: Dict[str, Any]) -> Dict[str, Any]:
        """Translate an entry patch into model column values."""
        columns = dict(patch)
        if 'school_review' in columns:
            review = columns.pop('school_review')
            columns.update({
                'school_decision': review.decision if review else '',
                'school_feedback': review.feedback if review else '',
                'school_reviewer_id': review.reviewer_id if review else None,
                'school_reviewed_at': review.reviewed_at if review else None,
            })
        return columns

    def _get_model(self, entry_id):
        from .models import LogbookEntry

        try:
            return LogbookEntry.objects.get(pk=entry_id)
        except (LogbookEntry.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(f"Logbook entry {entry_id} not found")

    def create_entry(self, data):
        from .models import LogbookEntry

        _check_keys(data, ENTRY_FIELDS, 'entry')
        obj = LogbookEntry.objects.create(**self._entry_columns(data))
        return self.entry_from_model(obj)

    def get_entry(self, entry_id):
        return self.entry_from_model(self._get_model(entry_id))

    def list_entries_by_student(self, student_id):
        from .models import LogbookEntry

        qs = LogbookEntry.objects.filter(student_id=student_id).order_by('-date', '-created_at')
        return [self.entry_from_model(obj) for obj in qs]

    def update_entry(self, entry_id, patch):
        _check_keys(patch, ENTRY_FIELDS, 'entry')
        obj = self._get_model(entry_id)
        for name, value in self._entry_columns(patch).items():
            setattr(obj, name, value)
        obj.save()
        return self.entry_from_model(obj)

    def delete_entry(self, entry_id):
        self._get_model(entry_id).delete()

    def list_approved_entries(self, student_id):
        from .models import LogbookEntry

        qs = LogbookEntry.objects.filter(
            student_id=student_id,
            status=EntryStatus.APPROVED
        ).order_by('-date', '-created_at')
        return [self.entry_from_model(obj) for obj in qs]

    def list_entries_for_students(self, student_ids, statuses=None):
        from .models import LogbookEntry

        qs = LogbookEntry.objects.filter(student_id__in=list(student_ids))
        if statuses is not None:
            qs = qs.filter(status__in=list(statuses))
        return [self.entry_from_model(obj) for obj in qs.order_by('-created_at')]

    def get_clearance_record(self, student_id):
        from .models import ClearanceRecord

        obj = ClearanceRecord.objects.filter(student_id=student_id).first()
        return self.clearance_from_model(obj) if obj else None

    def get_or_create_clearance_record(self, student_id, defaults=None):
        from .models import ClearanceRecord

        defaults = defaults or {}
        _check_keys(defaults, CLEARANCE_FIELDS, 'clearance')
        with transaction.atomic():
            obj, created = ClearanceRecord.objects.select_for_update().get_or_create(
                student_id=student_id,
                defaults=defaults
            )
        if created:
            logger.info(f"Created clearance record for student {student_id}")
        return self.clearance_from_model(obj)

    def update_clearance_record(self, student_id, patch):
        from .models import ClearanceRecord

        _check_keys(patch, CLEARANCE_FIELDS, 'clearance')
        with transaction.atomic():
            try:
                obj = ClearanceRecord.objects.select_for_update().get(student_id=student_id)
            except ClearanceRecord.DoesNotExist:
                raise NotFoundError(f"No clearance record for student {student_id}")
            for name, value in patch.items():
                setattr(obj, name, value)
            obj.save()
        return self.clearance_from_model(obj)

    def list_clearance_student_ids(self):
        from .models import ClearanceRecord, LogbookEntry

        student_ids = set(LogbookEntry.objects.values_list('student_id', flat=True).distinct())
        student_ids.update(ClearanceRecord.objects.values_list('student_id', flat=True))
        return sorted(student_ids)

    def atomic(self):
        return transaction.atomic()


@lru_cache(maxsize=None)
def get_entry_store() -> EntryStore:
    """Process-wide store selected from settings.LOGBOOK_STORE_BACKEND."""
    backend = getattr(settings, 'LOGBOOK_STORE_BACKEND', 'logbook.stores.DjangoEntryStore')
    store_cls = import_string(backend)
    logger.info(f"Using logbook store backend {backend}")
    return store_cls()
