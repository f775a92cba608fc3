"""
Logbook record types.

Plain dataclasses exchanged between the store adapters and the workflow
services. Both the database store and the in-memory store return these, so
the engines never touch ORM instances directly.
"""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

# Approved entries (weeks) required to complete the programme
DURATION_THRESHOLD = 24

# Sunday first so that the tuple index is the day number (Sunday=0..Saturday=6)
DAY_NAMES = (
    'sunday', 'monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday',
)


class EntryStatus:
    DRAFT = 'draft'
    PENDING = 'pending'
    APPROVED = 'approved'

    CHOICES = [
        (DRAFT, 'Draft'),
        (PENDING, 'Pending Review'),
        (APPROVED, 'Approved'),
    ]
    ALL = (DRAFT, PENDING, APPROVED)


class ClearanceStatus:
    NOT_CLEARED = 'not_cleared'
    READY_FOR_SCHOOL_APPROVAL = 'ready_for_school_approval'
    CLEARED = 'cleared'

    CHOICES = [
        (NOT_CLEARED, 'Not Cleared'),
        (READY_FOR_SCHOOL_APPROVAL, 'Ready for School Approval'),
        (CLEARED, 'Cleared'),
    ]


class ReviewAction:
    APPROVE = 'approve'
    REJECT = 'reject'
    ALL = (APPROVE, REJECT)


class ReviewDecision:
    APPROVED = 'approved'
    REJECTED = 'rejected'

    CHOICES = [
        (APPROVED, 'Approved'),
        (REJECTED, 'Rejected'),
    ]


class SupervisorType:
    INDUSTRY = 'industry'
    SCHOOL = 'school'
    ALL = (INDUSTRY, SCHOOL)


def day_name_for(day: date) -> str:
    """Lowercase weekday name of a calendar day."""
    return DAY_NAMES[day.isoweekday() % 7]


def _iso(value):
    return value.isoformat() if value is not None else None


@dataclass
class SchoolReview:
    """Final-stage review left by the school supervisor on an approved entry."""
    decision: str
    feedback: str
    reviewer_id: Any
    reviewed_at: datetime

    @property
    def is_approved(self) -> bool:
        return self.decision == ReviewDecision.APPROVED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'decision': self.decision,
            'feedback': self.feedback,
            'reviewer_id': self.reviewer_id,
            'reviewed_at': _iso(self.reviewed_at),
        }


@dataclass
class Entry:
    """
    One daily logbook submission.

    `comments_from_supervisor` holds the industry supervisor's feedback only;
    the school supervisor's verdict lives in `school_review`.
    """
    id: Any
    student_id: Any
    date: date
    title: str
    task_done: str
    status: str = EntryStatus.DRAFT
    day_name: str = ''
    media_url: List[str] = field(default_factory=list)
    comments_from_supervisor: str = ''
    industry_reviewer_id: Any = None
    industry_reviewed_at: Optional[datetime] = None
    school_review: Optional[SchoolReview] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def has_industry_review(self) -> bool:
        return self.industry_reviewed_at is not None

    @property
    def is_school_approved(self) -> bool:
        return self.school_review is not None and self.school_review.is_approved

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'student_id': self.student_id,
            'date': _iso(self.date),
            'day_name': self.day_name,
            'title': self.title,
            'task_done': self.task_done,
            'media_url': list(self.media_url),
            'status': self.status,
            'comments_from_supervisor': self.comments_from_supervisor,
            'industry_reviewer_id': self.industry_reviewer_id,
            'industry_reviewed_at': _iso(self.industry_reviewed_at),
            'school_review': self.school_review.to_dict() if self.school_review else None,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }


@dataclass
class Clearance:
    """Clearance record of one student. Never deleted once created."""
    student_id: Any
    industry_supervisor_approved: bool = False
    school_supervisor_approved: bool = False
    school_supervisor_id: Any = None
    school_approval_date: Optional[datetime] = None
    total_weeks_completed: int = 0
    total_entries_approved: int = 0
    status: str = ClearanceStatus.NOT_CLEARED
    completed_at: Optional[datetime] = None
    id: Any = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_cleared(self) -> bool:
        return self.status == ClearanceStatus.CLEARED

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ('school_approval_date', 'completed_at', 'created_at', 'updated_at'):
            data[key] = _iso(data[key])
        return data
