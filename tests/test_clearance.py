import pytest
from django.utils import timezone

from logbook.exceptions import AuthError, ForbiddenError
from logbook.records import Clearance, ClearanceStatus, EntryStatus

from .factories import ADMIN, INDUSTRY, OTHER_SCHOOL, OTHER_STUDENT, SCHOOL, STUDENT


def _submit_and_approve(workspace, title='DB Design'):
    entry = workspace.services(STUDENT).lifecycle.create_entry({
        'date': timezone.localdate().isoformat(),
        'title': title,
        'task_done': 'Normalised the schema to 3NF',
    }, submit=True)
    return workspace.services(INDUSTRY).lifecycle.review_entry(entry.id, 'approve', 'Good job')


class TestWorkflowScenarios:

    def test_single_approval_does_not_clear(self, workspace):
        entry = _submit_and_approve(workspace)

        assert entry.status == EntryStatus.APPROVED
        record = workspace.store.get_clearance_record(STUDENT.id)
        assert record.industry_supervisor_approved is True
        assert record.status == ClearanceStatus.NOT_CLEARED

    def test_twenty_fourth_approval_makes_record_ready(self, workspace):
        workspace.seed(STUDENT.id, 23)

        _submit_and_approve(workspace)

        record = workspace.store.get_clearance_record(STUDENT.id)
        assert record.total_entries_approved == 24
        assert record.total_weeks_completed == 24
        assert record.status == ClearanceStatus.READY_FOR_SCHOOL_APPROVAL

    def test_school_approval_clears_ready_student(self, workspace):
        workspace.seed(STUDENT.id, 23)
        entry = _submit_and_approve(workspace)

        workspace.services(SCHOOL).lifecycle.review_entry(entry.id, 'approve', 'Signed off')

        record = workspace.store.get_clearance_record(STUDENT.id)
        assert record.status == ClearanceStatus.CLEARED
        assert record.school_supervisor_approved is True
        assert record.completed_at is not None
        assert 'student_cleared' in workspace.notifier.names()

        data = workspace.services(STUDENT).clearance.get_clearance_data(STUDENT.id)
        assert data.is_eligible is True
        assert data.overall_progress == 100
        assert data.clearance_status == ClearanceStatus.CLEARED

    def test_school_approval_below_threshold_is_not_eligible(self, workspace):
        entry = _submit_and_approve(workspace)

        workspace.services(SCHOOL).lifecycle.review_entry(entry.id, 'approve')

        record = workspace.store.get_clearance_record(STUDENT.id)
        assert record.school_supervisor_approved is True
        assert record.status == ClearanceStatus.NOT_CLEARED

        data = workspace.services(STUDENT).clearance.get_clearance_data(STUDENT.id)
        assert data.is_eligible is False

    def test_repeated_industry_approval_never_inflates_totals(self, workspace):
        workspace.seed(STUDENT.id, 5)
        clearance = workspace.services(INDUSTRY).clearance

        clearance.record_industry_approval(STUDENT.id)
        record = clearance.record_industry_approval(STUDENT.id)

        assert record.total_entries_approved == 5

    def test_cleared_record_never_regresses(self, workspace):
        workspace.seed(STUDENT.id, 24)
        clearance = workspace.services(SCHOOL).clearance
        clearance.mark_student_as_cleared(STUDENT.id)

        clearance.record_industry_approval(STUDENT.id)
        record = clearance.record_school_approval(STUDENT.id, SCHOOL.id)

        assert record.status == ClearanceStatus.CLEARED
        assert workspace.notifier.names().count('student_cleared') == 1


class TestMarkStudentAsCleared:

    def test_creates_record_when_absent(self, workspace):
        record = workspace.services(SCHOOL).clearance.mark_student_as_cleared(STUDENT.id)

        assert record.status == ClearanceStatus.CLEARED
        assert record.industry_supervisor_approved is True
        assert record.school_supervisor_approved is True
        assert record.school_supervisor_id == SCHOOL.id
        assert record.total_entries_approved == 24
        assert record.total_weeks_completed == 24
        assert record.completed_at is not None

    def test_forces_existing_record(self, workspace):
        workspace.seed(STUDENT.id, 3)
        workspace.services(INDUSTRY).clearance.record_industry_approval(STUDENT.id)

        record = workspace.services(SCHOOL).clearance.mark_student_as_cleared(STUDENT.id)

        assert record.status == ClearanceStatus.CLEARED
        assert record.school_supervisor_approved is True
        assert record.total_entries_approved == 3

    def test_is_idempotent(self, workspace):
        clearance = workspace.services(SCHOOL).clearance

        first = clearance.mark_student_as_cleared(STUDENT.id)
        second = clearance.mark_student_as_cleared(STUDENT.id)

        assert second.status == first.status == ClearanceStatus.CLEARED
        assert second.completed_at == first.completed_at
        assert second.school_approval_date == first.school_approval_date
        assert workspace.store.list_clearance_student_ids() == [STUDENT.id]
        assert workspace.notifier.names() == ['student_cleared']

    def test_unassigned_school_supervisor(self, workspace):
        with pytest.raises(ForbiddenError):
            workspace.services(OTHER_SCHOOL).clearance.mark_student_as_cleared(STUDENT.id)

        assert workspace.store.get_clearance_record(STUDENT.id) is None

    @pytest.mark.parametrize('actor', [STUDENT, INDUSTRY, ADMIN])
    def test_only_school_supervisors(self, workspace, actor):
        with pytest.raises(ForbiddenError):
            workspace.services(actor).clearance.mark_student_as_cleared(STUDENT.id)

    def test_requires_actor(self, workspace):
        with pytest.raises(AuthError):
            workspace.services(None).clearance.mark_student_as_cleared(STUDENT.id)


class TestClearanceData:

    def test_without_record(self, workspace):
        data = workspace.services(STUDENT).clearance.get_clearance_data(STUDENT.id)

        assert data.clearance_status == ClearanceStatus.NOT_CLEARED
        assert data.record is None
        assert data.overall_progress == 0
        assert workspace.store.get_clearance_record(STUDENT.id) is None

    def test_to_dict(self, workspace):
        workspace.seed(STUDENT.id, 12)

        payload = workspace.services(STUDENT).clearance.get_clearance_data(STUDENT.id).to_dict()

        assert [req['type'] for req in payload['requirements']] == [
            'duration', 'log_entries', 'supervisor_approval', 'academic_approval', 'final_assessment',
        ]
        assert payload['overall_progress'] == 20
        assert payload['is_eligible'] is False
        assert payload['stats']['approved'] == 12

    @pytest.mark.parametrize('actor', [STUDENT, INDUSTRY, SCHOOL, ADMIN])
    def test_readable_by_student_supervisors_and_admin(self, workspace, actor):
        workspace.services(actor).clearance.get_clearance_data(STUDENT.id)

    def test_hidden_from_other_students_and_supervisors(self, workspace):
        with pytest.raises(ForbiddenError):
            workspace.services(OTHER_STUDENT).clearance.get_clearance_data(STUDENT.id)
        with pytest.raises(ForbiddenError):
            workspace.services(OTHER_SCHOOL).clearance.get_logbook_stats(STUDENT.id)


class TestRecount:

    def test_refreshes_totals_and_promotes(self, workspace):
        workspace.store.get_or_create_clearance_record(STUDENT.id, defaults={
            'industry_supervisor_approved': True,
            'total_entries_approved': 2,
        })
        workspace.seed(STUDENT.id, 24)
        clearance = workspace.services(ADMIN).clearance

        changed = clearance.recount(STUDENT.id)

        assert changed == {
            'total_weeks_completed': 24,
            'total_entries_approved': 24,
            'status': ClearanceStatus.READY_FOR_SCHOOL_APPROVAL,
        }
        assert clearance.recount(STUDENT.id) == {}

    def test_dry_run_leaves_record(self, workspace):
        workspace.store.get_or_create_clearance_record(STUDENT.id)
        workspace.seed(STUDENT.id, 4)

        changed = workspace.services(ADMIN).clearance.recount(STUDENT.id, dry_run=True)

        assert changed == {'total_weeks_completed': 4, 'total_entries_approved': 4}
        assert workspace.store.get_clearance_record(STUDENT.id).total_entries_approved == 0

    def test_never_promotes_without_industry_approval(self, workspace):
        workspace.store.get_or_create_clearance_record(STUDENT.id)
        workspace.seed(STUDENT.id, 24)

        workspace.services(ADMIN).clearance.recount(STUDENT.id)

        assert workspace.store.get_clearance_record(STUDENT.id).status == ClearanceStatus.NOT_CLEARED

    def test_skips_cleared_records(self, workspace):
        workspace.services(SCHOOL).clearance.mark_student_as_cleared(STUDENT.id)

        assert workspace.services(ADMIN).clearance.recount(STUDENT.id) == {}
        assert workspace.store.get_clearance_record(STUDENT.id).total_entries_approved == 24

    def test_recount_all(self, workspace):
        workspace.store.get_or_create_clearance_record(STUDENT.id)
        workspace.seed(STUDENT.id, 2)
        workspace.seed(OTHER_STUDENT.id, 1)

        result = workspace.services(ADMIN).clearance.recount_all()

        assert result == {'checked': 1, 'updated': 1}

    def test_provision_record(self, workspace):
        record = workspace.services(ADMIN).clearance.provision_record(OTHER_STUDENT.id)

        assert isinstance(record, Clearance)
        assert record.status == ClearanceStatus.NOT_CLEARED
        assert record.industry_supervisor_approved is False
