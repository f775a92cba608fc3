"""Core app admin configuration"""
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, StudentProfile, Notification


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    ordering = ['email']
    list_display = ['email', 'first_name', 'last_name', 'role', 'is_staff']
    list_filter = ['role', 'is_active', 'is_staff']
    search_fields = ['email', 'first_name', 'last_name']
    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        ('Personal Info', {'fields': ('first_name', 'middle_name', 'last_name', 'phone')}),
        ('Role', {'fields': ('role',)}),
        ('Permissions', {'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions')}),
    )
    add_fieldsets = (
        (None, {'classes': ('wide',), 'fields': ('email', 'first_name', 'last_name', 'role', 'password1', 'password2')}),
    )


@admin.register(StudentProfile)
class StudentProfileAdmin(admin.ModelAdmin):
    """Admin for student placement details and supervisor assignment"""
    list_display = ['user', 'matric_no', 'department', 'industry_supervisor', 'school_supervisor', 'is_active']
    list_filter = ['is_active', 'department', 'level']
    search_fields = ['user__email', 'user__first_name', 'user__last_name', 'matric_no']
    autocomplete_fields = ['user', 'industry_supervisor', 'school_supervisor']
    readonly_fields = ['created_at', 'updated_at']

    fieldsets = (
        ('Student', {
            'fields': ('user', 'matric_no', 'department', 'level', 'siwes_duration', 'is_active')
        }),
        ('Supervisor Assignment', {
            'fields': ('industry_supervisor', 'school_supervisor'),
            'description': 'Each student has one industry-based and one school-based supervisor.'
        }),
        ('Audit', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['user', 'notification_type', 'title', 'priority', 'is_read', 'email_sent', 'created_at']
    list_filter = ['notification_type', 'priority', 'is_read', 'email_sent']
    search_fields = ['user__email', 'title', 'message']
    date_hierarchy = 'created_at'
    readonly_fields = ['created_at', 'read_at', 'email_sent_at']
