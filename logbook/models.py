"""
Logbook models
Daily logbook entries and the per-student clearance record
"""
from django.db import models
from simple_history.models import HistoricalRecords

from core.models import AuditedModel, User

from .records import ClearanceStatus, DAY_NAMES, EntryStatus, ReviewDecision


class LogbookEntry(AuditedModel):
    """
    Daily logbook entry written by a student.
    Reviewed first by the industry supervisor, then by the school supervisor.
    """

    DAY_NAME_CHOICES = [(name, name.title()) for name in DAY_NAMES]

    student = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='logbook_entries'
    )

    # Date
    date = models.DateField(help_text="Day the work was done")
    day_name = models.CharField(max_length=10, choices=DAY_NAME_CHOICES)

    # Content
    title = models.CharField(max_length=200)
    task_done = models.TextField(max_length=2000)
    media_url = models.JSONField(
        default=list,
        blank=True,
        help_text="Ordered list of attachment references"
    )

    status = models.CharField(
        max_length=20,
        choices=EntryStatus.CHOICES,
        default=EntryStatus.DRAFT,
        db_index=True
    )

    # Industry supervisor review
    comments_from_supervisor = models.TextField(blank=True)
    industry_reviewer = models.ForeignKey(
        User,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='industry_reviewed_entries'
    )
    industry_reviewed_at = models.DateTimeField(null=True, blank=True)

    # School supervisor review
    school_decision = models.CharField(
        max_length=10,
        choices=ReviewDecision.CHOICES,
        blank=True
    )
    school_feedback = models.TextField(blank=True)
    school_reviewer = models.ForeignKey(
        User,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='school_reviewed_entries'
    )
    school_reviewed_at = models.DateTimeField(null=True, blank=True)

    history = HistoricalRecords()

    class Meta:
        ordering = ['-date', '-created_at']
        verbose_name = 'Logbook Entry'
        verbose_name_plural = 'Logbook Entries'
        indexes = [
            models.Index(fields=['student', 'status']),
            models.Index(fields=['student', '-date']),
        ]

    def __str__(self):
        return f"{self.student} - {self.date}: {self.title[:50]}"

    @property
    def is_school_approved(self):
        return self.school_decision == ReviewDecision.APPROVED


class ClearanceRecord(AuditedModel):
    """
    Clearance form of a student.
    Created on the first industry approval, or pre-provisioned with the profile.
    """
    student = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name='clearance_record'
    )

    industry_supervisor_approved = models.BooleanField(default=False)
    school_supervisor_approved = models.BooleanField(default=False)
    school_supervisor = models.ForeignKey(
        User,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='cleared_students'
    )
    school_approval_date = models.DateTimeField(null=True, blank=True)

    # Derived from the approved entry count on every recount
    total_weeks_completed = models.PositiveIntegerField(default=0)
    total_entries_approved = models.PositiveIntegerField(default=0)

    status = models.CharField(
        max_length=30,
        choices=ClearanceStatus.CHOICES,
        default=ClearanceStatus.NOT_CLEARED,
        db_index=True
    )
    completed_at = models.DateTimeField(null=True, blank=True)

    history = HistoricalRecords()

    class Meta:
        ordering = ['-updated_at']
        verbose_name = 'Clearance Record'
        verbose_name_plural = 'Clearance Records'

    def __str__(self):
        return f"{self.student} - {self.get_status_display()}"
