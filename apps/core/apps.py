from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.core'
    verbose_name = 'Core'

    def ready(self):
        """Wire event subscribers on Django startup."""
        from apps.core.permissions import connect_role_cache_invalidation
        connect_role_cache_invalidation()
