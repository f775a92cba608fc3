"""
Notification Service

Handles in-app notifications for logbook and clearance events, with optional
email delivery alongside them.

Configuration in settings.py:
    EMAIL_HOST, EMAIL_PORT, etc. - Standard Django email settings
    LOGBOOK_NOTIFY_BY_EMAIL = True  # Also email every in-app notification
"""
import logging
from typing import Dict, List

from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string
from django.utils import timezone
from django.utils.html import strip_tags

from core.models import User, Notification

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Service for creating and sending notifications.

    Usage:
        service = NotificationService()

        # Send a notification
        service.send_notification(
            user=user,
            notification_type='LOGBOOK_SUBMITTED',
            title='New logbook entry to review',
            message='Ada Obi submitted the entry for 3 March 2025.',
            link='/api/logbook/entries/123/'
        )
    """

    def __init__(self):
        """Initialize notification service."""
        self.email_enabled = (
            getattr(settings, 'LOGBOOK_NOTIFY_BY_EMAIL', False)
            and getattr(settings, 'EMAIL_HOST', None) is not None
        )
        self.from_email = getattr(settings, 'DEFAULT_FROM_EMAIL', 'noreply@logbookflow.ng')

    def create_notification(
        self,
        user: User,
        notification_type: str,
        title: str,
        message: str,
        link: str = '',
        priority: str = 'NORMAL'
    ) -> Notification:
        """
        Create an in-app notification record.

        Returns:
            The created Notification instance
        """
        return Notification.objects.create(
            user=user,
            notification_type=notification_type,
            priority=priority,
            title=title,
            message=message,
            link=link,
        )

    def send_email(
        self,
        user: User,
        subject: str,
        template_name: str = None,
        context: Dict = None,
        plain_message: str = None
    ) -> bool:
        """
        Send an email notification.

        Args:
            user: User to send to
            subject: Email subject
            template_name: Optional email template (e.g., 'notifications/email/entry_reviewed.html')
            context: Context dict for template rendering
            plain_message: Plain text message if not using template

        Returns:
            True if sent successfully
        """
        if not self.email_enabled:
            logger.debug("Email notifications disabled, skipping email")
            return False

        if not user.email:
            logger.warning(f"User {user.id} has no email address")
            return False

        try:
            if template_name and context:
                html_message = render_to_string(template_name, context)
                text_message = strip_tags(html_message)
            else:
                html_message = None
                text_message = plain_message or subject

            send_mail(
                subject=subject,
                message=text_message,
                from_email=self.from_email,
                recipient_list=[user.email],
                html_message=html_message,
                fail_silently=False,
            )

            logger.info(f"Email sent to {user.email}: {subject}")
            return True

        except Exception:
            # Delivery is best effort; the in-app record already exists
            logger.exception(f"Failed to send email to {user.email}")
            return False

    def send_notification(
        self,
        user: User,
        notification_type: str,
        title: str,
        message: str,
        link: str = '',
        priority: str = 'NORMAL',
        email_template: str = None,
        email_context: Dict = None
    ) -> Notification:
        """
        Create the in-app notification and email it when email is enabled.

        Args:
            user: User to notify
            notification_type: Type of notification (must match NOTIFICATION_TYPE_CHOICES)
            title: Notification title
            message: Full notification message
            link: Optional URL to link to
            priority: Priority level (LOW, NORMAL, HIGH)
            email_template: Optional email template name
            email_context: Optional email template context

        Returns:
            The created Notification instance
        """
        notification = self.create_notification(
            user=user,
            notification_type=notification_type,
            title=title,
            message=message,
            link=link,
            priority=priority
        )

        if self.email_enabled:
            email_sent = self.send_email(
                user=user,
                subject=title,
                template_name=email_template,
                context=email_context,
                plain_message=message
            )
            if email_sent:
                notification.email_sent = True
                notification.email_sent_at = timezone.now()
                notification.save(update_fields=['email_sent', 'email_sent_at'])

        return notification

    def get_unread_count(self, user: User) -> int:
        """Get count of unread notifications for a user."""
        return Notification.objects.filter(user=user, is_read=False).count()

    def get_recent_notifications(
        self,
        user: User,
        limit: int = 10,
        unread_only: bool = False
    ) -> List[Notification]:
        """Get recent notifications for a user."""
        qs = Notification.objects.filter(user=user)
        if unread_only:
            qs = qs.filter(is_read=False)
        return list(qs.order_by('-created_at')[:limit])

    def mark_all_read(self, user: User) -> int:
        """Mark all notifications as read for a user. Returns count updated."""
        return Notification.objects.filter(
            user=user,
            is_read=False
        ).update(
            is_read=True,
            read_at=timezone.now()
        )


# Singleton instance
_notification_service = None


def get_notification_service() -> NotificationService:
    """Get the singleton notification service instance."""
    global _notification_service
    if _notification_service is None:
        _notification_service = NotificationService()
    return _notification_service


# =============================================================================
# Notification Helper Functions
# =============================================================================

def _entry_link(entry) -> str:
    return f'/api/logbook/entries/{entry.id}/'


def notify_entry_submitted(supervisor_user: User, student_user: User, entry) -> Notification:
    """Notify the industry supervisor that a student submitted an entry for review."""
    service = get_notification_service()

    return service.send_notification(
        user=supervisor_user,
        notification_type='LOGBOOK_SUBMITTED',
        title='Logbook Entry Awaiting Review',
        message=(
            f"{student_user.get_full_name() or student_user.email} submitted the logbook entry "
            f"for {entry.date:%d %B %Y}: {entry.title}"
        ),
        link=_entry_link(entry)
    )


def notify_entry_reviewed(student_user: User, entry, approved: bool, reviewer_label: str) -> Notification:
    """Notify a student of a supervisor's decision on one of their entries."""
    service = get_notification_service()

    if approved:
        return service.send_notification(
            user=student_user,
            notification_type='LOGBOOK_APPROVED',
            title='Logbook Entry Approved',
            message=f"Your {reviewer_label} approved the entry for {entry.date:%d %B %Y}.",
            link=_entry_link(entry)
        )

    return service.send_notification(
        user=student_user,
        notification_type='LOGBOOK_REJECTED',
        title='Logbook Entry Returned',
        message=(
            f"Your {reviewer_label} returned the entry for {entry.date:%d %B %Y}. "
            f"Please review the feedback and revise it."
        ),
        link=_entry_link(entry),
        priority='HIGH'
    )


def notify_student_cleared(student_user: User) -> Notification:
    """Notify a student that their SIWES clearance has been granted."""
    service = get_notification_service()

    return service.send_notification(
        user=student_user,
        notification_type='CLEARANCE_GRANTED',
        title='SIWES Clearance Granted',
        message="Your school supervisor has cleared you. Your clearance form is ready.",
        link='/api/logbook/clearance/',
        priority='HIGH'
    )
