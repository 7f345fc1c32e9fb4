from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'core'
    verbose_name = 'Gear marketplace'

    def ready(self):
        # Connect outbox signal receivers
        from . import signals  # noqa: F401
