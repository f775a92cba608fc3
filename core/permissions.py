"""
Role definitions for LogbookFlow
Defines role codes and the supervisor type each supervisor role maps to
"""


class Role:
    """All user roles in the system"""

    STUDENT = 'student'
    SUPERVISOR_SCHOOL = 'supervisor_school'
    SUPERVISOR_INDUSTRY = 'supervisor_industry'
    SUPER_ADMIN = 'super_admin'

    CHOICES = [
        (STUDENT, 'Student'),
        (SUPERVISOR_SCHOOL, 'School Supervisor'),
        (SUPERVISOR_INDUSTRY, 'Industry Supervisor'),
        (SUPER_ADMIN, 'Super Admin'),
    ]


# Supervisor roles and the review stage each one owns
SUPERVISOR_TYPE_BY_ROLE = {
    Role.SUPERVISOR_INDUSTRY: 'industry',
    Role.SUPERVISOR_SCHOOL: 'school',
}


def get_user_role(user):
    """
    Resolve the effective role of a user.
    Superusers always act as super admins regardless of the stored role.
    Returns None for anonymous users.
    """
    if user is None or not user.is_authenticated:
        return None
    if user.is_superuser:
        return Role.SUPER_ADMIN
    return user.role
