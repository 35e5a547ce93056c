from django.apps import AppConfig


class SchedulingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.scheduling"
    verbose_name = "Scheduling"

    def ready(self):
        # Registers the schedule_changed receivers (audit, notifications, broadcasts)
        from apps.scheduling import signals  # noqa: F401
