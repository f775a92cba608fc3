from datetime import timedelta

import pytest
from django.core.cache import cache
from django.utils import timezone

from core.permissions import Role

from .factories import Workspace


@pytest.fixture(autouse=True)
def clear_django_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def workspace():
    return Workspace()


@pytest.fixture
def yesterday():
    return timezone.localdate() - timedelta(days=1)


# =====================================================
# DATABASE FIXTURES
# =====================================================

@pytest.fixture
def make_user(db):
    from core.models import User

    def _make_user(email, role=Role.STUDENT, **extra):
        return User.objects.create_user(
            email=email,
            password='s3cure-passw0rd',
            first_name=extra.pop('first_name', email.split('@')[0].title()),
            last_name=extra.pop('last_name', 'Test'),
            role=role,
            **extra
        )
    return _make_user


@pytest.fixture
def industry_user(make_user):
    return make_user('mentor@plant.ng', Role.SUPERVISOR_INDUSTRY)


@pytest.fixture
def school_user(make_user):
    return make_user('lecturer@uni.edu.ng', Role.SUPERVISOR_SCHOOL)


@pytest.fixture
def student_user(make_user, industry_user, school_user):
    from core.models import StudentProfile

    user = make_user('ada@uni.edu.ng', first_name='Ada', last_name='Obi')
    StudentProfile.objects.create(
        user=user,
        matric_no='ENG/2021/001',
        department='Electrical Engineering',
        level='400',
        industry_supervisor=industry_user,
        school_supervisor=school_user,
    )
    return user
