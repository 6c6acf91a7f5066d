from django.db import models


class Country(models.Model):
    # id is a storage surrogate; name is the natural key refreshes upsert on
    name = models.CharField(max_length=255, unique=True)
    capital = models.CharField(max_length=255, null=True, blank=True)
    region = models.CharField(max_length=255, null=True, blank=True)
    population = models.BigIntegerField()
    currency_code = models.CharField(max_length=10, null=True, blank=True)
    # rate of currency_code against the base currency of the rates feed
    exchange_rate = models.DecimalField(max_digits=20, decimal_places=6, null=True, blank=True)
    # null when the currency or its rate was missing at refresh time
    estimated_gdp = models.DecimalField(max_digits=30, decimal_places=5, null=True, blank=True, db_index=True)
    flag_url = models.URLField(max_length=500, null=True, blank=True)
    last_refreshed_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "countries"

    def __str__(self):
        return self.name
