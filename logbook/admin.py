"""Logbook app admin configuration"""
from django.contrib import admin
from simple_history.admin import SimpleHistoryAdmin

from .models import LogbookEntry, ClearanceRecord


@admin.register(LogbookEntry)
class LogbookEntryAdmin(SimpleHistoryAdmin):
    """Admin for daily logbook entries"""
    list_display = ['student', 'date', 'day_name', 'title', 'status',
                   'industry_reviewer', 'school_decision']
    list_filter = ['status', 'school_decision', 'day_name']
    search_fields = ['student__email', 'student__first_name', 'student__last_name',
                    'title', 'task_done']
    date_hierarchy = 'date'
    autocomplete_fields = ['student', 'industry_reviewer', 'school_reviewer']
    readonly_fields = ['created_at', 'updated_at', 'industry_reviewed_at', 'school_reviewed_at']

    fieldsets = (
        ('Entry', {
            'fields': ('student', 'date', 'day_name', 'title', 'task_done', 'media_url', 'status')
        }),
        ('Industry Review', {
            'fields': ('comments_from_supervisor', 'industry_reviewer', 'industry_reviewed_at'),
        }),
        ('School Review', {
            'fields': ('school_decision', 'school_feedback', 'school_reviewer', 'school_reviewed_at'),
            'classes': ('collapse',)
        }),
        ('Audit', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )


@admin.register(ClearanceRecord)
class ClearanceRecordAdmin(SimpleHistoryAdmin):
    """Admin for student clearance records"""
    list_display = ['student', 'status', 'total_entries_approved', 'industry_supervisor_approved',
                   'school_supervisor_approved', 'is_complete', 'completed_at']
    list_filter = ['status', 'industry_supervisor_approved', 'school_supervisor_approved']
    search_fields = ['student__email', 'student__first_name', 'student__last_name']
    autocomplete_fields = ['student', 'school_supervisor']
    readonly_fields = ['created_at', 'updated_at', 'completed_at']

    fieldsets = (
        ('Student', {
            'fields': ('student', 'status', 'completed_at')
        }),
        ('Approvals', {
            'fields': ('industry_supervisor_approved', 'school_supervisor_approved',
                      'school_supervisor', 'school_approval_date')
        }),
        ('Totals', {
            'fields': ('total_entries_approved', 'total_weeks_completed'),
            'description': 'Recounted from approved entries on every approval and by the recount_clearance command.'
        }),
        ('Audit', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def is_complete(self, obj):
        return obj.industry_supervisor_approved and obj.school_supervisor_approved
    is_complete.boolean = True
    is_complete.short_description = 'Both Approved'
