from django.apps import AppConfig


class DonationsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'donations'
    verbose_name = 'Donation pipeline'

    def ready(self):
        from .services import build_services

        # One set of service objects per process, handed to views through the app config
        self.services = build_services()
