import logging
from concurrent.futures import ThreadPoolExecutor

import requests
from django.conf import settings
from requests.exceptions import RequestException

from .exceptions import UpstreamUnavailable

logger = logging.getLogger(__name__)

COUNTRIES = "countries"
EXCHANGE_RATES = "exchange_rates"


def fetch_json(endpoint, url, timeout):
    """GET `url` and return the decoded JSON body, or raise UpstreamUnavailable."""
    try:
        resp = requests.get(url, timeout=timeout)
        resp.raise_for_status()
        return resp.json()
    except (RequestException, ValueError) as exc:
        logger.error("Fetching %s from %s failed: %s", endpoint, url, exc)
        raise UpstreamUnavailable(endpoint, str(exc), url=url) from exc


class UpstreamFetcher:
    """Fetches the country listing and the exchange-rate table in parallel."""

    def __init__(self, countries_url, rates_url, timeout=10):
        self.countries_url = countries_url
        self.rates_url = rates_url
        self.timeout = timeout

    @classmethod
    def from_settings(cls):
        return cls(
            settings.COUNTRIES_API_URL,
            settings.EXCHANGE_RATES_API_URL,
            timeout=settings.UPSTREAM_TIMEOUT,
        )

    def fetch(self):
        """Return (countries, rates); both requests must succeed."""
        with ThreadPoolExecutor(max_workers=2) as executor:
            countries_future = executor.submit(fetch_json, COUNTRIES, self.countries_url, self.timeout)
            rates_future = executor.submit(fetch_json, EXCHANGE_RATES, self.rates_url, self.timeout)
            # wait for both before reporting, so no request outlives the call
            errors = [f.exception() for f in (countries_future, rates_future)]
        for error in errors:
            if error is not None:
                raise error

        countries = countries_future.result()
        if not isinstance(countries, list):
            raise UpstreamUnavailable(COUNTRIES, "expected a JSON list of countries", url=self.countries_url)

        payload = rates_future.result()
        rates = payload.get("rates") if isinstance(payload, dict) else None
        if not isinstance(rates, dict):
            raise UpstreamUnavailable(EXCHANGE_RATES, "response has no 'rates' table", url=self.rates_url)

        logger.info("Fetched %d countries and %d exchange rates", len(countries), len(rates))
        return countries, rates
