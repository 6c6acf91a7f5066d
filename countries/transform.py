import logging
import random
from collections import namedtuple
from decimal import Decimal, InvalidOperation

from django.conf import settings

from .exceptions import ValidationSkipped
from .models import Country

logger = logging.getLogger(__name__)

RATE_PLACES = Decimal("0.000001")
GDP_PLACES = Decimal("0.00001")

TransformResult = namedtuple("TransformResult", ["rows", "skipped"])


def first_currency_code(entry):
    currencies = entry.get("currencies") or []
    if not currencies or not isinstance(currencies[0], dict):
        return None
    return currencies[0].get("code") or None


def parse_rate(value):
    """
    Return the rate as a positive Decimal at column precision, or None when
    unusable. A rate too small to store counts as unusable.
    """
    if isinstance(value, bool):
        return None
    try:
        rate = Decimal(str(value))
        if not rate.is_finite():
            return None
        rate = rate.quantize(RATE_PLACES)
    except (InvalidOperation, TypeError, ValueError):
        return None
    if rate <= 0:
        return None
    return rate


class RecordTransformer:
    """
    Maps raw country entries plus the rate table into unsaved Country rows.

    estimated_gdp = population * multiplier / rate, with the multiplier drawn
    uniformly from [multiplier_min, multiplier_max). Pass a seeded
    random.Random as `rng` to make the estimate reproducible.
    """

    def __init__(self, multiplier_min=1000, multiplier_max=2000, rng=None):
        if multiplier_max < multiplier_min:
            raise ValueError("multiplier_max must not be lower than multiplier_min")
        self.multiplier_min = multiplier_min
        self.multiplier_max = multiplier_max
        self.rng = rng or random.Random()

    @classmethod
    def from_settings(cls, rng=None):
        return cls(settings.GDP_MULTIPLIER_MIN, settings.GDP_MULTIPLIER_MAX, rng=rng)

    def make_multiplier(self):
        return self.multiplier_min + self.rng.random() * (self.multiplier_max - self.multiplier_min)

    def validate(self, entry):
        if not isinstance(entry, dict):
            raise ValidationSkipped(entry, "entry is not an object")
        name = entry.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationSkipped(entry, "name is required")
        population = entry.get("population")
        if population is None:
            raise ValidationSkipped(entry, "population is required")
        if isinstance(population, bool) or not isinstance(population, int) or population < 0:
            raise ValidationSkipped(entry, "population must be a non-negative integer")

    def transform(self, entry, rates):
        """Return a Country for `entry`, or None if it was skipped."""
        try:
            self.validate(entry)
        except ValidationSkipped as skip:
            logger.warning("Skipping country record (%s): %r", skip.reason, entry)
            return None

        population = entry["population"]
        currency_code = first_currency_code(entry)
        exchange_rate = None
        estimated_gdp = None

        if currency_code:
            exchange_rate = parse_rate(rates.get(currency_code))
            if exchange_rate is not None:
                multiplier = Decimal(self.make_multiplier())
                # derived from the stored rate so the row agrees with itself
                estimated_gdp = (Decimal(population) * multiplier / exchange_rate).quantize(GDP_PLACES)

        return Country(
            name=entry["name"].strip(),
            capital=entry.get("capital") or None,
            region=entry.get("region") or None,
            population=population,
            currency_code=currency_code,
            exchange_rate=exchange_rate,
            estimated_gdp=estimated_gdp,
            flag_url=entry.get("flag") or None,
        )

    def transform_batch(self, entries, rates):
        rows = {}
        skipped = 0
        for entry in entries:
            row = self.transform(entry, rates)
            if row is None:
                skipped += 1
                continue
            if row.name in rows:
                logger.warning("Duplicate country %r in source data, keeping the last entry", row.name)
                del rows[row.name]
            rows[row.name] = row
        return TransformResult(list(rows.values()), skipped)
