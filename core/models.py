"""
Core models for LogbookFlow
Contains the User model, student profiles with supervisor assignments,
the audited base class and in-app notifications
"""
from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from django.utils import timezone

from .permissions import Role


class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication"""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('The Email field must be set')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', Role.SUPER_ADMIN)
        return self.create_user(email, password, **extra_fields)


class User(AbstractUser):
    """
    Custom User model with email as primary identifier
    """
    username = None  # Remove username field
    email = models.EmailField('email address', unique=True)
    middle_name = models.CharField(max_length=150, blank=True)
    phone = models.CharField(max_length=20, blank=True)

    role = models.CharField(
        max_length=30,
        choices=Role.CHOICES,
        default=Role.STUDENT,
        db_index=True
    )

    # Status
    is_active = models.BooleanField(default=True)

    # Timestamps
    date_joined = models.DateTimeField(default=timezone.now)
    last_login = models.DateTimeField(null=True, blank=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['first_name', 'last_name']

    objects = UserManager()

    class Meta:
        verbose_name = 'user'
        verbose_name_plural = 'users'

    def __str__(self):
        return self.email

    def get_full_name(self):
        parts = [self.first_name, self.middle_name, self.last_name]
        return " ".join(p for p in parts if p).strip()

    @property
    def is_student(self):
        return self.role == Role.STUDENT


class AuditedModel(models.Model):
    """
    Abstract base class for models requiring an audit trail
    Provides created/updated timestamps and the users behind them
    """
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name='%(class)s_created',
        null=True, blank=True
    )
    updated_by = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name='%(class)s_updated',
        null=True, blank=True
    )

    class Meta:
        abstract = True


class StudentProfile(AuditedModel):
    """
    Academic and placement details of a student on work experience.
    Each student has one industry-based and one school-based supervisor.
    """
    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name='student_profile'
    )
    matric_no = models.CharField(max_length=50, blank=True)
    department = models.CharField(max_length=150, blank=True)
    level = models.CharField(max_length=20, blank=True)
    siwes_duration = models.CharField(
        max_length=100,
        blank=True,
        help_text='Placement period as printed on the clearance form'
    )

    # Supervisor assignment
    industry_supervisor = models.ForeignKey(
        User,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='industry_students',
        limit_choices_to={'role': Role.SUPERVISOR_INDUSTRY}
    )
    school_supervisor = models.ForeignKey(
        User,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='school_students',
        limit_choices_to={'role': Role.SUPERVISOR_SCHOOL}
    )

    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        ordering = ['user__first_name', 'user__last_name']
        verbose_name = 'Student Profile'
        verbose_name_plural = 'Student Profiles'

    def __str__(self):
        return f"{self.user.get_full_name()} ({self.matric_no or self.user.email})"


class Notification(models.Model):
    """
    User notification for logbook and clearance events.
    Supports optional email delivery.
    """
    NOTIFICATION_TYPE_CHOICES = [
        ('LOGBOOK_SUBMITTED', 'Logbook Entry Submitted'),
        ('LOGBOOK_APPROVED', 'Logbook Entry Approved'),
        ('LOGBOOK_REJECTED', 'Logbook Entry Returned'),
        ('CLEARANCE_GRANTED', 'Clearance Granted'),
        ('SYSTEM', 'System Notification'),
    ]

    PRIORITY_CHOICES = [
        ('LOW', 'Low'),
        ('NORMAL', 'Normal'),
        ('HIGH', 'High'),
    ]

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='notifications'
    )

    notification_type = models.CharField(
        max_length=30,
        choices=NOTIFICATION_TYPE_CHOICES,
        default='SYSTEM'
    )
    priority = models.CharField(
        max_length=10,
        choices=PRIORITY_CHOICES,
        default='NORMAL'
    )

    title = models.CharField(max_length=200)
    message = models.TextField()

    # Link to related object
    link = models.CharField(max_length=500, blank=True)

    # Status
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)

    # Delivery status
    email_sent = models.BooleanField(default=False)
    email_sent_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Notification'
        verbose_name_plural = 'Notifications'
        indexes = [
            models.Index(fields=['user', 'is_read']),
        ]

    def __str__(self):
        return f"{self.user.email} - {self.title}"

    def mark_read(self):
        self.is_read = True
        self.read_at = timezone.now()
        self.save(update_fields=['is_read', 'read_at'])
