"""
Notifier collaborators for the logbook workflow.

The workflow services only call the three hooks below; what a notification
looks like and how it is delivered stays outside the engines.
"""
import logging
from typing import Any, List, Tuple

from .records import Entry, ReviewDecision, SupervisorType

logger = logging.getLogger(__name__)


class Notifier:
    """No-op notifier. Subclasses override the hooks they deliver."""

    def entry_submitted(self, entry: Entry) -> None:
        pass

    def entry_reviewed(self, entry: Entry, decision: str, supervisor_type: str) -> None:
        pass

    def student_cleared(self, student_id) -> None:
        pass


class MemoryNotifier(Notifier):
    """Records every hook call, in order. Used by fixture runs and tests."""

    def __init__(self):
        self.events: List[Tuple[str, Any]] = []

    def entry_submitted(self, entry):
        self.events.append(('entry_submitted', entry.id))

    def entry_reviewed(self, entry, decision, supervisor_type):
        self.events.append(('entry_reviewed', (entry.id, decision, supervisor_type)))

    def student_cleared(self, student_id):
        self.events.append(('student_cleared', student_id))

    def names(self) -> List[str]:
        return [name for name, _ in self.events]


class InAppNotifier(Notifier):
    """Creates core.Notification records through core.services.notifications."""

    REVIEWER_LABELS = {
        SupervisorType.INDUSTRY: 'industry supervisor',
        SupervisorType.SCHOOL: 'school supervisor',
    }

    @staticmethod
    def _user(user_id):
        from core.models import User

        user = User.objects.filter(pk=user_id).first()
        if user is None:
            logger.warning(f"No user {user_id} to notify")
        return user

    def entry_submitted(self, entry):
        from core.models import StudentProfile
        from core.services.notifications import notify_entry_submitted

        profile = (
            StudentProfile.objects
            .select_related('user', 'industry_supervisor')
            .filter(user_id=entry.student_id)
            .first()
        )
        if profile is None or profile.industry_supervisor is None:
            logger.info(f"Student {entry.student_id} has no industry supervisor to notify")
            return
        notify_entry_submitted(profile.industry_supervisor, profile.user, entry)

    def entry_reviewed(self, entry, decision, supervisor_type):
        from core.services.notifications import notify_entry_reviewed

        student = self._user(entry.student_id)
        if student is None:
            return
        notify_entry_reviewed(
            student,
            entry,
            approved=decision == ReviewDecision.APPROVED,
            reviewer_label=self.REVIEWER_LABELS[supervisor_type],
        )

    def student_cleared(self, student_id):
        from core.services.notifications import notify_student_cleared

        student = self._user(student_id)
        if student is not None:
            notify_student_cleared(student)
