from django.apps import AppConfig


class LogbookConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'logbook'
    verbose_name = 'Logbook & Clearance'

    def ready(self):
        """Import signals when app is ready"""
        from . import signals  # noqa
