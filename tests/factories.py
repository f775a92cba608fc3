"""Actors, fixture data and test doubles shared by the test modules."""
from datetime import timedelta

from django.utils import timezone

from core.permissions import Role
from logbook.cache import StatsCache
from logbook.identity import Actor, StaticIdentity
from logbook.notifiers import MemoryNotifier
from logbook.records import Entry, EntryStatus, ReviewDecision, SchoolReview, day_name_for
from logbook.services import build_services
from logbook.stores import InMemoryEntryStore

STUDENT = Actor(1, Role.STUDENT)
OTHER_STUDENT = Actor(2, Role.STUDENT)
INDUSTRY = Actor(10, Role.SUPERVISOR_INDUSTRY)
OTHER_INDUSTRY = Actor(11, Role.SUPERVISOR_INDUSTRY)
SCHOOL = Actor(20, Role.SUPERVISOR_SCHOOL)
OTHER_SCHOOL = Actor(21, Role.SUPERVISOR_SCHOOL)
ADMIN = Actor(99, Role.SUPER_ADMIN)


class MemoryStatsCache(StatsCache):

    def __init__(self):
        self.data = {}
        self.versions = {}

    def get(self, student_id):
        return self.data.get(student_id)

    def version(self, student_id):
        return self.versions.get(student_id, 0)

    def set(self, student_id, value, version):
        if version == self.version(student_id):
            self.data[student_id] = value

    def invalidate(self, student_id):
        self.data.pop(student_id, None)
        self.versions[student_id] = self.version(student_id) + 1


class Workspace:
    """One in-memory store shared by every actor of a test."""

    def __init__(self):
        self.store = InMemoryEntryStore()
        self.cache = MemoryStatsCache()
        self.notifier = MemoryNotifier()
        self.identity = StaticIdentity(assignments={
            (INDUSTRY.id, 'industry'): [STUDENT.id],
            (SCHOOL.id, 'school'): [STUDENT.id],
            (OTHER_INDUSTRY.id, 'industry'): [OTHER_STUDENT.id],
            (OTHER_SCHOOL.id, 'school'): [OTHER_STUDENT.id],
        })

    def services(self, actor):
        return build_services(
            self.identity.acting_as(actor),
            store=self.store,
            cache=self.cache,
            notifier=self.notifier,
        )

    def seed(self, student_id, count, status=EntryStatus.APPROVED, school_approved=False):
        """Store `count` entries directly, dated on consecutive past days."""
        today = timezone.localdate()
        now = timezone.now()
        reviewed = status == EntryStatus.APPROVED
        created = []
        for offset in range(1, count + 1):
            day = today - timedelta(days=offset)
            created.append(self.store.create_entry({
                'student_id': student_id,
                'date': day,
                'day_name': day_name_for(day),
                'title': f'Day {offset}',
                'task_done': f'Work done on day {offset}',
                'status': status,
                'industry_reviewer_id': INDUSTRY.id if reviewed else None,
                'industry_reviewed_at': now if reviewed else None,
                'school_review': SchoolReview(
                    decision=ReviewDecision.APPROVED,
                    feedback='',
                    reviewer_id=SCHOOL.id,
                    reviewed_at=now,
                ) if school_approved else None,
            }))
        return created


def make_entry(**overrides) -> Entry:
    day = overrides.pop('date', timezone.localdate() - timedelta(days=1))
    values = {
        'id': None,
        'student_id': STUDENT.id,
        'date': day,
        'day_name': day_name_for(day),
        'title': 'Site visit',
        'task_done': 'Inspected the substation',
    }
    values.update(overrides)
    return Entry(**values)
