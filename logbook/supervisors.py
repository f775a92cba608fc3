"""
Supervisor variants.

An industry supervisor performs the first-stage review of pending entries;
a school supervisor performs the final-stage review of entries the industry
supervisor already approved. Both share one capability interface so that
call sites never compare role strings.
"""
import logging
from typing import Any, Dict, Iterable

from .exceptions import ConflictError, ForbiddenError
from .identity import Actor, IdentityProvider
from .records import (
    Entry, EntryStatus, ReviewAction, ReviewDecision, SchoolReview, SupervisorType,
)

logger = logging.getLogger(__name__)


class Supervisor:
    """Base capability shared by both supervisor types."""

    supervisor_type = None
    # Entry statuses this supervisor type reviews
    review_scope = ()

    def __init__(self, supervisor_id, student_ids: Iterable[Any]):
        self.id = supervisor_id
        self.student_ids = frozenset(student_ids)

    def __repr__(self):
        return f"{self.__class__.__name__}(id={self.id!r}, students={len(self.student_ids)})"

    def supervises(self, student_id) -> bool:
        return student_id in self.student_ids

    def can_review(self, entry: Entry) -> bool:
        """True when the entry is assigned to this supervisor and awaiting their stage."""
        if not self.supervises(entry.student_id):
            return False
        try:
            self.check_reviewable(entry)
        except ConflictError:
            return False
        return True

    def check_access(self, entry: Entry) -> None:
        if not self.supervises(entry.student_id):
            raise ForbiddenError("You are not assigned to this student")

    def check_reviewable(self, entry: Entry) -> None:
        raise NotImplementedError

    def review_patch(self, entry: Entry, action: str, feedback: str, now) -> Dict[str, Any]:
        """Store patch that records this review on the entry."""
        raise NotImplementedError


class IndustrySupervisor(Supervisor):
    supervisor_type = SupervisorType.INDUSTRY
    review_scope = (EntryStatus.PENDING,)

    def check_reviewable(self, entry: Entry) -> None:
        if entry.status != EntryStatus.PENDING:
            raise ConflictError(
                "Industry review is only possible while the entry is pending",
                current_state=entry.status
            )

    def review_patch(self, entry, action, feedback, now):
        # A rejection keeps the entry pending so the student can revise it
        return {
            'status': EntryStatus.APPROVED if action == ReviewAction.APPROVE else EntryStatus.PENDING,
            'comments_from_supervisor': feedback,
            'industry_reviewer_id': self.id,
            'industry_reviewed_at': now,
        }


class SchoolSupervisor(Supervisor):
    supervisor_type = SupervisorType.SCHOOL
    review_scope = (EntryStatus.APPROVED,)

    def check_reviewable(self, entry: Entry) -> None:
        if entry.status != EntryStatus.APPROVED or not entry.has_industry_review:
            raise ConflictError(
                "Final review requires an entry already approved by the industry supervisor",
                current_state=entry.status
            )
        if entry.is_school_approved:
            raise ConflictError(
                "Entry already carries a school supervisor approval",
                current_state=entry.status
            )

    def review_patch(self, entry, action, feedback, now):
        decision = ReviewDecision.APPROVED if action == ReviewAction.APPROVE else ReviewDecision.REJECTED
        return {
            'school_review': SchoolReview(
                decision=decision,
                feedback=feedback,
                reviewer_id=self.id,
                reviewed_at=now,
            ),
        }


SUPERVISOR_CLASSES = {
    SupervisorType.INDUSTRY: IndustrySupervisor,
    SupervisorType.SCHOOL: SchoolSupervisor,
}


def resolve_supervisor(actor: Actor, identity: IdentityProvider, supervisor_type: str = None) -> Supervisor:
    """
    Build the supervisor variant for the acting user.

    Raises ForbiddenError when the actor is not a supervisor, or when the
    requested supervisor type does not match the actor's role.
    """
    actor_type = actor.supervisor_type
    if actor_type is None:
        raise ForbiddenError("Only supervisors can perform this action")
    if supervisor_type is not None and supervisor_type != actor_type:
        logger.warning(
            f"Actor {actor.id} with role {actor.role} attempted a {supervisor_type} supervisor action"
        )
        raise ForbiddenError(f"Only {supervisor_type} supervisors can perform this action")

    supervisor_cls = SUPERVISOR_CLASSES[actor_type]
    return supervisor_cls(actor.id, identity.assigned_students(actor.id, actor_type))


def ensure_can_view_student(actor: Actor, identity: IdentityProvider, student_id) -> None:
    """
    Read access to a student's logbook and clearance data: the student
    themself, either assigned supervisor, or a super admin.
    """
    if actor.is_super_admin:
        return
    if actor.is_student:
        if actor.id == student_id:
            return
        raise ForbiddenError("You can only view your own logbook")
    if actor.supervisor_type is not None:
        supervisor = resolve_supervisor(actor, identity)
        if supervisor.supervises(student_id):
            return
    raise ForbiddenError("You are not assigned to this student")
