from django.apps import AppConfig


class CountriesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'countries'

    def ready(self):
        from .refresh import CatalogRefresher

        # one refresher per process; it owns the last-refreshed timestamp
        self.refresher = CatalogRefresher.from_settings()
