"""LogbookFlow URL Configuration"""
from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from django.shortcuts import redirect


def home_redirect(request):
    """Redirect home to the admin login or the student's own stats"""
    if request.user.is_authenticated:
        return redirect('logbook:my_stats')
    return redirect('admin:login')


urlpatterns = [
    # Management interface
    path('admin/', admin.site.urls),

    # Home - redirect to login or stats
    path('', home_redirect, name='home'),

    # Logbook and clearance API
    path('api/logbook/', include('logbook.urls', namespace='logbook')),

    # Django auth views (password reset, etc.)
    path('accounts/', include('django.contrib.auth.urls')),
]

if settings.DEBUG:
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)
