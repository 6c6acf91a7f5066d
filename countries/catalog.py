"""
Catalog storage: the batch upsert used by refreshes and the plain queries
behind the read endpoints.
"""
import logging

from django.db import DatabaseError, transaction
from django.db.models import F

from .exceptions import CountryNotFound, StorageFailure
from .models import Country

logger = logging.getLogger(__name__)

UPSERT_BATCH_SIZE = 100

# every mutable column; last_refreshed_at is stamped by auto_now
UPDATE_FIELDS = [
    "capital", "region", "population", "currency_code",
    "exchange_rate", "estimated_gdp", "flag_url", "last_refreshed_at",
]

SORT_ORDERS = {
    "gdp_asc": F("estimated_gdp").asc(nulls_last=True),
    "gdp_desc": F("estimated_gdp").desc(nulls_last=True),
    "name_asc": F("name").asc(),
    "name_desc": F("name").desc(),
    "population_asc": F("population").asc(),
    "population_desc": F("population").desc(),
}


def upsert_options(features):
    """bulk_create arguments for an upsert on name, for the given backend features."""
    options = {"update_conflicts": True, "update_fields": UPDATE_FIELDS}
    # MySQL has no conflict target: ON DUPLICATE KEY UPDATE fires on any unique key
    if features.supports_update_conflicts_with_target:
        options["unique_fields"] = ["name"]
    return options


def upsert_countries(rows):
    """
    Insert or update every row keyed on name. Never deletes.

    Must run inside the caller's transaction; commit and rollback belong to
    the caller.
    """
    connection = transaction.get_connection()
    if not connection.in_atomic_block:
        raise StorageFailure("upsert_countries must run inside a transaction")
    try:
        Country.objects.bulk_create(
            rows,
            batch_size=UPSERT_BATCH_SIZE,
            **upsert_options(connection.features),
        )
    except DatabaseError as exc:
        raise StorageFailure(f"Upserting countries failed: {exc}") from exc
    logger.info("Upserted %d countries", len(rows))
    return len(rows)


def read_back_aggregates(limit=5):
    """Return (total, [(name, estimated_gdp), ...]) as seen by the open transaction."""
    try:
        total = Country.objects.count()
        top = list(
            Country.objects
            .order_by(SORT_ORDERS["gdp_desc"], "id")
            .values_list("name", "estimated_gdp")[:limit]
        )
    except DatabaseError as exc:
        raise StorageFailure(f"Reading back the catalog failed: {exc}") from exc
    return total, top


def list_countries(region=None, currency=None, sort=None):
    qs = Country.objects.all()
    if region:
        qs = qs.filter(region__iexact=region)
    if currency:
        qs = qs.filter(currency_code__iexact=currency)
    order = SORT_ORDERS.get(sort)
    if order is None:
        if sort:
            logger.debug("Ignoring unknown sort %r", sort)
        return qs.order_by("id")
    return qs.order_by(order, "id")


def get_country(name):
    country = Country.objects.filter(name__iexact=name).order_by("id").first()
    if country is None:
        raise CountryNotFound(name)
    return country


def delete_country(name):
    country = get_country(name)
    country.delete()
    logger.info("Deleted country %r", country.name)


def count_countries():
    return Country.objects.count()
