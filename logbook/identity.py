"""
Identity collaborator.

Answers two questions for the workflow: who is acting, and which students a
supervisor is assigned to. `UserIdentity` reads both from the request user
and `core.StudentProfile`; `StaticIdentity` holds them in memory for fixture
runs and tests.
"""
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from core.permissions import Role, SUPERVISOR_TYPE_BY_ROLE, get_user_role

from .exceptions import AuthError, ValidationError
from .records import SupervisorType


@dataclass(frozen=True)
class Actor:
    id: Any
    role: str

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT

    @property
    def is_super_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN

    @property
    def supervisor_type(self) -> Optional[str]:
        """'industry' or 'school' for supervisors, None for everyone else."""
        return SUPERVISOR_TYPE_BY_ROLE.get(self.role)


def check_supervisor_type(supervisor_type: str) -> str:
    if supervisor_type not in SupervisorType.ALL:
        raise ValidationError(
            f"supervisor_type must be one of {', '.join(SupervisorType.ALL)}",
            field='supervisor_type'
        )
    return supervisor_type


class IdentityProvider(ABC):

    @abstractmethod
    def current_actor(self) -> Optional[Actor]:
        ...

    @abstractmethod
    def assigned_students(self, supervisor_id, supervisor_type: str) -> List[Any]:
        ...

    def require_actor(self) -> Actor:
        actor = self.current_actor()
        if actor is None:
            raise AuthError("Authentication required")
        return actor


class UserIdentity(IdentityProvider):
    """Identity backed by the authenticated Django user."""

    def __init__(self, user):
        self.user = user

    def current_actor(self) -> Optional[Actor]:
        role = get_user_role(self.user)
        if role is None:
            return None
        return Actor(id=self.user.pk, role=role)

    def assigned_students(self, supervisor_id, supervisor_type: str) -> List[Any]:
        from core.models import StudentProfile

        check_supervisor_type(supervisor_type)
        field = f'{supervisor_type}_supervisor_id'
        return list(
            StudentProfile.objects.filter(
                is_active=True,
                **{field: supervisor_id}
            ).values_list('user_id', flat=True)
        )


class StaticIdentity(IdentityProvider):
    """
    In-memory identity.

    Usage:
        identity = StaticIdentity(Actor(1, Role.STUDENT))
        identity.assign(10, 'industry', 1)
        supervisor_view = identity.acting_as(Actor(10, Role.SUPERVISOR_INDUSTRY))
    """

    def __init__(self, actor: Optional[Actor] = None,
                 assignments: Optional[Dict[Tuple[Any, str], Iterable[Any]]] = None):
        self.actor = actor
        self._assignments = defaultdict(list)
        for key, student_ids in (assignments or {}).items():
            self._assignments[key].extend(student_ids)

    def current_actor(self) -> Optional[Actor]:
        return self.actor

    def assigned_students(self, supervisor_id, supervisor_type: str) -> List[Any]:
        check_supervisor_type(supervisor_type)
        return list(self._assignments.get((supervisor_id, supervisor_type), []))

    def assign(self, supervisor_id, supervisor_type: str, student_id) -> None:
        check_supervisor_type(supervisor_type)
        students = self._assignments[(supervisor_id, supervisor_type)]
        if student_id not in students:
            students.append(student_id)

    def acting_as(self, actor: Optional[Actor]) -> 'StaticIdentity':
        """Same assignments, different actor."""
        clone = StaticIdentity(actor)
        clone._assignments = self._assignments
        return clone
