"""Logbook API URL configuration"""
from django.urls import path

from . import views

app_name = 'logbook'

urlpatterns = [
    # Entries
    path('entries/', views.entries, name='entries'),
    path('entries/<int:entry_id>/', views.entry_detail, name='entry_detail'),
    path('entries/<int:entry_id>/submit/', views.submit_entry, name='submit_entry'),
    path('entries/<int:entry_id>/review/', views.review_entry, name='review_entry'),

    # Own stats and clearance
    path('stats/', views.logbook_stats, name='my_stats'),
    path('clearance/', views.clearance_data, name='my_clearance'),

    # A student's stats and clearance (supervisors, admins)
    path('students/<int:student_id>/stats/', views.logbook_stats, name='student_stats'),
    path('students/<int:student_id>/progress/', views.student_progress, name='student_progress'),
    path('students/<int:student_id>/clearance/', views.clearance_data, name='student_clearance'),
    path('students/<int:student_id>/clear/', views.mark_cleared, name='mark_cleared'),

    # Supervisor dashboard
    path('supervisor/reviews/', views.supervisor_reviews, name='supervisor_reviews'),
    path('supervisor/entries/', views.supervisor_entries, name='supervisor_entries'),
    path('supervisor/stats/', views.supervisor_stats, name='supervisor_stats'),
    path('supervisor/students/', views.supervisor_students, name='supervisor_students'),

    # Notifications
    path('notifications/', views.notifications, name='notifications'),
    path('notifications/read/', views.mark_notifications_read, name='notifications_read'),
    path('notifications/<int:notification_id>/read/', views.mark_notification_read, name='notification_read'),
]
