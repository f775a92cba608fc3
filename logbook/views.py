"""
Logbook JSON API

Thin request/response layer over the workflow services. Every response is
either {"ok": true, ...} or {"ok": false, "error": {"code", "message"}}.
Forbidden and missing records share one 404 response so callers cannot
tell which entries or students exist.
"""
from __future__ import annotations

import json
import logging
from functools import wraps
from typing import Any

from django.core.paginator import Paginator
from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from core.models import Notification, StudentProfile
from core.services.notifications import get_notification_service

from .exceptions import (
    AuthError, ConflictError, ForbiddenError, LogbookError, NotFoundError, ValidationError,
)
from .identity import UserIdentity
from .services import build_services

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def _json_error(message: str, *, status: int = 400, code: str = "error", **extra: Any) -> JsonResponse:
    error: dict[str, Any] = {"code": code, "message": message}
    error.update(extra)
    return JsonResponse({"ok": False, "error": error}, status=status)


def _json_ok(data: dict[str, Any] | None = None, *, status: int = 200) -> JsonResponse:
    payload: dict[str, Any] = {"ok": True}
    if data:
        payload.update(data)
    return JsonResponse(payload, status=status)


def _parse_body(request: HttpRequest) -> dict[str, Any]:
    if not request.body:
        return {}
    try:
        body = json.loads(request.body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _int_param(request: HttpRequest, name: str, default: int | None = None) -> int | None:
    raw = request.GET.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer", field=name)


def _bool_param(request: HttpRequest, name: str) -> bool:
    return (request.GET.get(name) or "").lower() in ("1", "true", "yes")


def api_view(*methods: str):
    """
    csrf-exempt JSON view restricted to the given methods, with workflow
    errors mapped onto status codes.
    """
    def decorator(view):
        @csrf_exempt
        @require_http_methods(list(methods))
        @wraps(view)
        def wrapper(request, *args, **kwargs):
            try:
                return view(request, *args, **kwargs)
            except ValidationError as exc:
                extra = {"field": exc.field} if exc.field else {}
                return _json_error(exc.message, status=400, code=exc.code, **extra)
            except AuthError as exc:
                return _json_error(exc.message, status=401, code=exc.code)
            except (ForbiddenError, NotFoundError) as exc:
                logger.info(f"{request.method} {request.path} refused: {exc.message}")
                return _json_error("Not found", status=404, code=NotFoundError.code)
            except ConflictError as exc:
                extra = {"current_state": exc.current_state} if exc.current_state else {}
                return _json_error(exc.message, status=409, code=exc.code, **extra)
            except LogbookError as exc:
                return _json_error(exc.message, status=400, code=exc.code)
            except Exception:
                logger.exception(f"Unhandled error in {request.method} {request.path}")
                raise
        return wrapper
    return decorator


def _services(request: HttpRequest):
    return build_services(UserIdentity(request.user))


def _require_user(request: HttpRequest):
    if not request.user.is_authenticated:
        raise AuthError("Authentication required")
    return request.user


def _student_directory(student_ids) -> dict[Any, dict[str, Any]]:
    """Display details of students, keyed by user id."""
    profiles = StudentProfile.objects.select_related('user').filter(user_id__in=list(student_ids))
    return {
        profile.user_id: {
            'name': profile.user.get_full_name(),
            'email': profile.user.email,
            'matric_no': profile.matric_no,
            'department': profile.department,
        }
        for profile in profiles
    }


# =====================================================
# ENTRIES
# =====================================================

@api_view("GET", "POST")
def entries(request: HttpRequest) -> JsonResponse:
    """
    GET: list entries (own, or ?student_id= for supervisors), newest first.
         Filters: status, search. Paging: page, limit.
    POST: create an entry; {"submit": true} creates it pending.
    """
    services = _services(request)

    if request.method == "POST":
        body = _parse_body(request)
        submit = bool(body.pop("submit", False))
        entry = services.lifecycle.create_entry(body, submit=submit)
        return _json_ok({"entry": entry.to_dict()}, status=201)

    limit = _int_param(request, "limit", DEFAULT_PAGE_SIZE)
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}", field="limit")

    results = services.lifecycle.list_entries(
        student_id=_int_param(request, "student_id"),
        status=request.GET.get("status") or None,
        search=request.GET.get("search") or None,
    )
    page = Paginator(results, limit).get_page(_int_param(request, "page", 1))

    return _json_ok({
        "entries": [entry.to_dict() for entry in page.object_list],
        "count": page.paginator.count,
        "page": page.number,
        "total_pages": page.paginator.num_pages,
    })


@api_view("GET", "PATCH", "PUT", "DELETE")
def entry_detail(request: HttpRequest, entry_id: int) -> JsonResponse:
    services = _services(request)

    if request.method == "DELETE":
        services.lifecycle.delete_entry(entry_id)
        return _json_ok({"deleted": entry_id})

    if request.method in ("PATCH", "PUT"):
        entry = services.lifecycle.update_entry(entry_id, _parse_body(request))
        return _json_ok({"entry": entry.to_dict()})

    entry = services.lifecycle.get_entry(entry_id)
    return _json_ok({"entry": entry.to_dict()})


@api_view("POST")
def submit_entry(request: HttpRequest, entry_id: int) -> JsonResponse:
    entry = _services(request).lifecycle.submit_entry(entry_id)
    return _json_ok({"entry": entry.to_dict()})


@api_view("POST")
def review_entry(request: HttpRequest, entry_id: int) -> JsonResponse:
    """Body: {"action": "approve"|"reject", "feedback": "...", "supervisor_type": "industry"|"school"}"""
    body = _parse_body(request)
    entry = _services(request).lifecycle.review_entry(
        entry_id,
        action=body.get("action"),
        feedback=body.get("feedback"),
        supervisor_type=body.get("supervisor_type") or None,
    )
    return _json_ok({"entry": entry.to_dict()})


# =====================================================
# STATS & CLEARANCE
# =====================================================

def _student_or_self(request: HttpRequest, student_id: int | None):
    return student_id if student_id is not None else _require_user(request).pk


@api_view("GET")
def logbook_stats(request: HttpRequest, student_id: int | None = None) -> JsonResponse:
    services = _services(request)
    stats = services.clearance.get_logbook_stats(_student_or_self(request, student_id))
    return _json_ok({"stats": {**stats.to_dict(), "weeks_completed": stats.weeks_completed}})


@api_view("GET")
def student_progress(request: HttpRequest, student_id: int) -> JsonResponse:
    progress = _services(request).clearance.get_student_progress(student_id)
    return _json_ok({"progress": progress})


@api_view("GET")
def clearance_data(request: HttpRequest, student_id: int | None = None) -> JsonResponse:
    services = _services(request)
    data = services.clearance.get_clearance_data(_student_or_self(request, student_id))
    return _json_ok(data.to_dict())


@api_view("POST")
def mark_cleared(request: HttpRequest, student_id: int) -> JsonResponse:
    record = _services(request).clearance.mark_student_as_cleared(student_id)
    return _json_ok({"clearance": record.to_dict()})


# =====================================================
# SUPERVISOR DASHBOARD
# =====================================================

@api_view("GET")
def supervisor_reviews(request: HttpRequest) -> JsonResponse:
    """Review queue of the acting supervisor."""
    services = _services(request)
    queue = services.supervision.pending_reviews(request.GET.get("supervisor_type") or None)
    directory = _student_directory({entry.student_id for entry in queue})
    return _json_ok({
        "entries": [
            {**entry.to_dict(), "student": directory.get(entry.student_id)}
            for entry in queue
        ],
    })


@api_view("GET")
def supervisor_entries(request: HttpRequest) -> JsonResponse:
    services = _services(request)
    results = services.supervision.all_student_entries(request.GET.get("supervisor_type") or None)
    directory = _student_directory({entry.student_id for entry in results})
    return _json_ok({
        "entries": [
            {**entry.to_dict(), "student": directory.get(entry.student_id)}
            for entry in results
        ],
    })


@api_view("GET")
def supervisor_stats(request: HttpRequest) -> JsonResponse:
    services = _services(request)
    return _json_ok({"stats": services.supervision.supervisor_stats(request.GET.get("supervisor_type") or None)})


@api_view("GET")
def supervisor_students(request: HttpRequest) -> JsonResponse:
    """Clearance overview of the school supervisor's students (?ready_only=true)."""
    services = _services(request)
    rows = services.supervision.students_with_clearance(ready_only=_bool_param(request, "ready_only"))
    directory = _student_directory({row["student_id"] for row in rows})
    return _json_ok({
        "students": [{**row, "student": directory.get(row["student_id"])} for row in rows],
    })


# =====================================================
# NOTIFICATIONS
# =====================================================

def _notification_dict(notification: Notification) -> dict[str, Any]:
    return {
        "id": notification.pk,
        "type": notification.notification_type,
        "priority": notification.priority,
        "title": notification.title,
        "message": notification.message,
        "link": notification.link,
        "is_read": notification.is_read,
        "created_at": notification.created_at.isoformat(),
    }


@api_view("GET")
def notifications(request: HttpRequest) -> JsonResponse:
    user = _require_user(request)
    service = get_notification_service()
    limit = _int_param(request, "limit", 10)
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}", field="limit")

    recent = service.get_recent_notifications(user, limit=limit, unread_only=_bool_param(request, "unread"))
    return _json_ok({
        "notifications": [_notification_dict(n) for n in recent],
        "unread_count": service.get_unread_count(user),
    })


@api_view("POST")
def mark_notifications_read(request: HttpRequest) -> JsonResponse:
    user = _require_user(request)
    updated = get_notification_service().mark_all_read(user)
    return _json_ok({"updated": updated})


@api_view("POST")
def mark_notification_read(request: HttpRequest, notification_id: int) -> JsonResponse:
    user = _require_user(request)
    notification = Notification.objects.filter(pk=notification_id, user=user).first()
    if notification is None:
        raise NotFoundError(f"Notification {notification_id} not found")
    if not notification.is_read:
        notification.mark_read()
    return _json_ok({"notification": _notification_dict(notification)})
