from django.apps import AppConfig


class ArticlesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.articles'
    verbose_name = 'Articles'

    def ready(self):
        """Log and count every editorial transition."""
        from apps.core.events import article_transitioned
        from apps.articles.services import record_transition
        article_transitioned.subscribe(record_transition, dispatch_uid='articles.record_transition')
