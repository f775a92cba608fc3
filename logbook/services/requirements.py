"""
Clearance Requirement Evaluator

Maps a student's logbook stats and clearance record onto the five fixed
clearance requirements. This is the only place eligibility is decided; the
API and the clearance form printout both read it from here.
"""
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ..records import DURATION_THRESHOLD, Clearance, ClearanceStatus
from .aggregation import LogbookStats


class RequirementType:
    DURATION = 'duration'
    LOG_ENTRIES = 'log_entries'
    SUPERVISOR_APPROVAL = 'supervisor_approval'
    ACADEMIC_APPROVAL = 'academic_approval'
    FINAL_ASSESSMENT = 'final_assessment'

    ORDER = (DURATION, LOG_ENTRIES, SUPERVISOR_APPROVAL, ACADEMIC_APPROVAL, FINAL_ASSESSMENT)


class RequirementStatus:
    COMPLETED = 'completed'
    IN_PROGRESS = 'in-progress'
    PENDING = 'pending'


REQUIREMENT_TEXT = {
    RequirementType.DURATION: (
        'Complete Minimum Duration',
        f'Complete at least {DURATION_THRESHOLD} weeks of internship',
    ),
    RequirementType.LOG_ENTRIES: (
        'Submit Log Entries',
        'Submit daily log entries for each week',
    ),
    RequirementType.SUPERVISOR_APPROVAL: (
        'Industry Supervisor Approval',
        'Get approval from industry-based supervisor',
    ),
    RequirementType.ACADEMIC_APPROVAL: (
        'School Supervisor Approval',
        'Get approval from institution-based supervisor',
    ),
    RequirementType.FINAL_ASSESSMENT: (
        'Final Assessment',
        'Complete final evaluation and assessment',
    ),
}


@dataclass(frozen=True)
class ClearanceRequirement:
    type: str
    title: str
    description: str
    current: int
    required: int
    status: str

    @property
    def ratio(self) -> float:
        return min(self.current / self.required, 1.0)

    @property
    def is_completed(self) -> bool:
        return self.status == RequirementStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': str(RequirementType.ORDER.index(self.type) + 1),
            'type': self.type,
            'title': self.title,
            'description': self.description,
            'current': self.current,
            'required': self.required,
            'status': self.status,
        }


@dataclass(frozen=True)
class Evaluation:
    requirements: Tuple[ClearanceRequirement, ...]
    overall_progress: int
    is_eligible: bool


def _requirement(req_type, current, required, completed, incomplete_status):
    title, description = REQUIREMENT_TEXT[req_type]
    return ClearanceRequirement(
        type=req_type,
        title=title,
        description=description,
        current=current,
        required=required,
        status=RequirementStatus.COMPLETED if completed else incomplete_status,
    )


def _flag(req_type, value):
    return _requirement(req_type, 1 if value else 0, 1, bool(value), RequirementStatus.PENDING)


def evaluate(stats: LogbookStats, clearance: Optional[Clearance]) -> Evaluation:
    """
    Deterministic, side-effect free requirement evaluation.

    A missing clearance record counts as no approvals and not cleared.
    Overall progress is the mean of each requirement's completion ratio
    (capped at 1) as a whole percentage, rounded half up.
    """
    weeks = stats.weeks_completed
    requirements = (
        _requirement(
            RequirementType.DURATION,
            min(weeks, DURATION_THRESHOLD), DURATION_THRESHOLD,
            weeks >= DURATION_THRESHOLD, RequirementStatus.IN_PROGRESS,
        ),
        _requirement(
            RequirementType.LOG_ENTRIES,
            stats.total, DURATION_THRESHOLD,
            stats.total >= DURATION_THRESHOLD, RequirementStatus.IN_PROGRESS,
        ),
        _flag(RequirementType.SUPERVISOR_APPROVAL,
              clearance is not None and clearance.industry_supervisor_approved),
        _flag(RequirementType.ACADEMIC_APPROVAL,
              clearance is not None and clearance.school_supervisor_approved),
        _flag(RequirementType.FINAL_ASSESSMENT,
              clearance is not None and clearance.status == ClearanceStatus.CLEARED),
    )

    mean_ratio = sum(req.ratio for req in requirements) / len(requirements)
    overall_progress = int(math.floor(mean_ratio * 100 + 0.5))

    return Evaluation(
        requirements=requirements,
        overall_progress=overall_progress,
        is_eligible=all(req.is_completed for req in requirements),
    )
