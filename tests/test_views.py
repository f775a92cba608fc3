import json
from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone

from core.models import Notification
from core.permissions import Role
from logbook.models import ClearanceRecord, LogbookEntry
from logbook.records import ClearanceStatus, EntryStatus, day_name_for

pytestmark = pytest.mark.django_db


def _post(client, url, payload=None):
    return client.post(url, data=json.dumps(payload or {}), content_type='application/json')


def _patch(client, url, payload):
    return client.patch(url, data=json.dumps(payload), content_type='application/json')


def _create(client, yesterday, submit=False, **overrides):
    payload = {
        'date': yesterday.isoformat(),
        'title': 'Switchgear inspection',
        'task_done': 'Inspected the 11kV switchgear panels',
        'submit': submit,
    }
    payload.update(overrides)
    return _post(client, reverse('logbook:entries'), payload)


def _approved_entries(student, count):
    today = timezone.localdate()
    for offset in range(1, count + 1):
        day = today - timedelta(days=offset)
        LogbookEntry.objects.create(
            student=student,
            date=day,
            day_name=day_name_for(day),
            title=f'Day {offset}',
            task_done='Meter calibration',
            status=EntryStatus.APPROVED,
            industry_reviewed_at=timezone.now(),
        )


@pytest.fixture
def student_client(client, student_user):
    client.force_login(student_user)
    return client


class TestAuthentication:

    def test_anonymous_is_rejected(self, client, db):
        response = client.get(reverse('logbook:entries'))

        assert response.status_code == 401
        assert response.json()['error']['code'] == 'auth_required'

    def test_method_not_allowed(self, student_client):
        assert student_client.get(reverse('logbook:notifications_read')).status_code == 405


class TestEntries:

    def test_create_draft(self, student_client, student_user, yesterday):
        response = _create(student_client, yesterday)

        assert response.status_code == 201
        entry = response.json()['entry']
        assert entry['status'] == EntryStatus.DRAFT
        assert entry['day_name'] == day_name_for(yesterday)
        assert entry['student_id'] == student_user.pk

    def test_create_and_submit_notifies_supervisor(self, student_client, industry_user, yesterday):
        response = _create(student_client, yesterday, submit=True)

        assert response.json()['entry']['status'] == EntryStatus.PENDING
        assert Notification.objects.filter(user=industry_user, notification_type='LOGBOOK_SUBMITTED').exists()

    def test_validation_error_names_field(self, student_client, yesterday):
        response = _create(student_client, yesterday, title='   ')

        assert response.status_code == 400
        assert response.json()['error']['code'] == 'validation_error'
        assert response.json()['error']['field'] == 'title'

    def test_future_date(self, student_client):
        response = _create(student_client, timezone.localdate() + timedelta(days=1))

        assert response.status_code == 400
        assert response.json()['error']['field'] == 'date'

    def test_invalid_json(self, student_client):
        response = student_client.post(reverse('logbook:entries'), data='{oops', content_type='application/json')

        assert response.status_code == 400

    def test_list_paginates(self, student_client, student_user):
        _approved_entries(student_user, 5)

        response = student_client.get(reverse('logbook:entries'), {'limit': 2, 'page': 2})

        body = response.json()
        assert body['count'] == 5
        assert body['total_pages'] == 3
        assert body['page'] == 2
        assert len(body['entries']) == 2

    def test_list_rejects_bad_limit(self, student_client):
        response = student_client.get(reverse('logbook:entries'), {'limit': 500})

        assert response.status_code == 400
        assert response.json()['error']['field'] == 'limit'

    def test_edit_delete_lifecycle(self, student_client, yesterday):
        entry_id = _create(student_client, yesterday).json()['entry']['id']
        url = reverse('logbook:entry_detail', args=[entry_id])

        response = _patch(student_client, url, {'title': 'Revised title'})
        assert response.json()['entry']['title'] == 'Revised title'

        response = _patch(student_client, url, {'date': yesterday.isoformat()})
        assert response.status_code == 400
        assert response.json()['error']['field'] == 'date'

        assert student_client.delete(url).json() == {'ok': True, 'deleted': entry_id}
        assert not LogbookEntry.objects.filter(pk=entry_id).exists()

    def test_submit_twice_conflicts(self, student_client, yesterday):
        entry_id = _create(student_client, yesterday).json()['entry']['id']
        url = reverse('logbook:submit_entry', args=[entry_id])

        assert _post(student_client, url).status_code == 200
        response = _post(student_client, url)

        assert response.status_code == 409
        assert response.json()['error']['current_state'] == EntryStatus.PENDING

    def test_missing_and_foreign_entries_look_the_same(self, client, student_user, make_user, yesterday):
        client.force_login(student_user)
        entry_id = _create(client, yesterday).json()['entry']['id']

        client.force_login(make_user('bola@uni.edu.ng'))
        foreign = client.get(reverse('logbook:entry_detail', args=[entry_id]))
        missing = client.get(reverse('logbook:entry_detail', args=[entry_id + 1000]))

        assert foreign.status_code == missing.status_code == 404
        assert foreign.json() == missing.json()


class TestReview:

    def test_industry_then_school_approval(self, client, student_user, industry_user, school_user, yesterday):
        client.force_login(student_user)
        entry_id = _create(client, yesterday, submit=True).json()['entry']['id']
        review_url = reverse('logbook:review_entry', args=[entry_id])

        client.force_login(industry_user)
        response = _post(client, review_url, {'action': 'approve', 'feedback': 'Well documented'})
        assert response.json()['entry']['status'] == EntryStatus.APPROVED
        assert ClearanceRecord.objects.get(student=student_user).industry_supervisor_approved is True

        client.force_login(school_user)
        response = _post(client, review_url, {'action': 'approve'})
        assert response.json()['entry']['school_review']['decision'] == 'approved'
        assert ClearanceRecord.objects.get(student=student_user).school_supervisor_approved is True

    def test_reject_requires_feedback(self, client, student_user, industry_user, yesterday):
        client.force_login(student_user)
        entry_id = _create(client, yesterday, submit=True).json()['entry']['id']

        client.force_login(industry_user)
        response = _post(client, reverse('logbook:review_entry', args=[entry_id]), {'action': 'reject'})

        assert response.status_code == 400
        assert response.json()['error']['field'] == 'feedback'

    def test_non_text_feedback(self, client, student_user, industry_user, yesterday):
        client.force_login(student_user)
        entry_id = _create(client, yesterday, submit=True).json()['entry']['id']

        client.force_login(industry_user)
        response = _post(client, reverse('logbook:review_entry', args=[entry_id]), {
            'action': 'approve',
            'feedback': 5,
        })

        assert response.status_code == 400
        assert response.json()['error']['field'] == 'feedback'
        assert LogbookEntry.objects.get(pk=entry_id).status == EntryStatus.PENDING

    def test_unassigned_supervisor_gets_not_found(self, client, student_user, make_user, yesterday):
        client.force_login(student_user)
        entry_id = _create(client, yesterday, submit=True).json()['entry']['id']

        client.force_login(make_user('stranger@plant.ng', Role.SUPERVISOR_INDUSTRY))
        response = _post(client, reverse('logbook:review_entry', args=[entry_id]), {'action': 'approve'})

        assert response.status_code == 404
        assert response.json()['error'] == {'code': 'not_found', 'message': 'Not found'}


class TestStatsAndClearance:

    def test_own_stats(self, student_client, student_user):
        _approved_entries(student_user, 3)

        stats = student_client.get(reverse('logbook:my_stats')).json()['stats']

        assert stats['approved'] == 3
        assert stats['weeks_completed'] == 3

    def test_supervisor_reads_student_progress(self, client, student_user, industry_user):
        _approved_entries(student_user, 2)
        client.force_login(industry_user)

        response = client.get(reverse('logbook:student_progress', args=[student_user.pk]))

        assert response.json()['progress']['approved_entries'] == 2

    def test_clearance_checklist(self, student_client, student_user):
        _approved_entries(student_user, 12)

        body = student_client.get(reverse('logbook:my_clearance')).json()

        assert body['overall_progress'] == 20
        assert body['is_eligible'] is False
        assert body['clearance_status'] == ClearanceStatus.NOT_CLEARED
        assert len(body['requirements']) == 5

    def test_mark_cleared(self, client, student_user, school_user):
        client.force_login(school_user)

        response = _post(client, reverse('logbook:mark_cleared', args=[student_user.pk]))

        assert response.json()['clearance']['status'] == ClearanceStatus.CLEARED
        assert Notification.objects.filter(user=student_user, notification_type='CLEARANCE_GRANTED').count() == 1

    def test_students_cannot_clear(self, student_client, student_user):
        response = _post(student_client, reverse('logbook:mark_cleared', args=[student_user.pk]))

        assert response.status_code == 404


class TestSupervisorDashboard:

    def test_review_queue_includes_student_details(self, client, student_user, industry_user, yesterday):
        client.force_login(student_user)
        _create(client, yesterday, submit=True)

        client.force_login(industry_user)
        entries = client.get(reverse('logbook:supervisor_reviews')).json()['entries']

        assert len(entries) == 1
        assert entries[0]['student']['name'] == 'Ada Obi'
        assert entries[0]['student']['matric_no'] == 'ENG/2021/001'

    def test_supervisor_stats(self, client, student_user, industry_user):
        _approved_entries(student_user, 2)
        client.force_login(industry_user)

        stats = client.get(reverse('logbook:supervisor_stats')).json()['stats']

        assert stats['students_count'] == 1
        assert stats['pending_reviews'] == 0

    def test_school_students_ready_only(self, client, student_user, school_user):
        _approved_entries(student_user, 24)
        client.force_login(school_user)

        students = client.get(reverse('logbook:supervisor_students'), {'ready_only': 'true'}).json()['students']

        assert [row['student_id'] for row in students] == [student_user.pk]
        assert students[0]['display_status'] == 'ready_for_clearance'
        assert students[0]['student']['email'] == student_user.email

    def test_all_student_entries(self, client, student_user, industry_user):
        _approved_entries(student_user, 2)
        client.force_login(industry_user)

        entries = client.get(reverse('logbook:supervisor_entries')).json()['entries']

        assert len(entries) == 2


class TestNotificationEndpoints:

    def test_list_and_mark_read(self, client, student_user, school_user):
        client.force_login(school_user)
        _post(client, reverse('logbook:mark_cleared', args=[student_user.pk]))

        client.force_login(student_user)
        body = client.get(reverse('logbook:notifications'), {'unread': 'true'}).json()
        assert body['unread_count'] == 1
        assert body['notifications'][0]['type'] == 'CLEARANCE_GRANTED'

        notification_id = body['notifications'][0]['id']
        response = _post(client, reverse('logbook:notification_read', args=[notification_id]))
        assert response.json()['notification']['is_read'] is True

        assert _post(client, reverse('logbook:notifications_read')).json()['updated'] == 0

    def test_other_users_notification(self, client, student_user, school_user):
        notification = Notification.objects.create(user=school_user, title='Hi', message='There')
        client.force_login(student_user)

        response = _post(client, reverse('logbook:notification_read', args=[notification.pk]))

        assert response.status_code == 404
