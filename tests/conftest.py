import pytest
from django.apps import apps

from countries.exceptions import UpstreamUnavailable
from countries.refresh import CatalogRefresher, RefreshState
from countries.transform import RecordTransformer


class FixedRandom:
    """Stands in for random.Random; always draws the same value."""

    def __init__(self, value=0.5):
        self.value = value

    def random(self):
        return self.value


class FakeFetcher:
    def __init__(self, countries=None, rates=None, error=None):
        self.countries = countries if countries is not None else []
        self.rates = rates if rates is not None else {}
        self.error = error
        self.calls = 0

    def fetch(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.countries, self.rates


SAMPLE_COUNTRIES = [
    {"name": "Nigeria", "capital": "Abuja", "region": "Africa", "population": 206139589,
     "flag": "https://flagcdn.com/ng.svg", "currencies": [{"code": "NGN", "name": "Nigerian naira"}]},
    {"name": "Ghana", "capital": "Accra", "region": "Africa", "population": 31072940,
     "flag": "https://flagcdn.com/gh.svg", "currencies": [{"code": "GHS"}]},
    {"name": "Japan", "capital": "Tokyo", "region": "Asia", "population": 125836021,
     "flag": "https://flagcdn.com/jp.svg", "currencies": [{"code": "JPY"}]},
    {"name": "India", "capital": "New Delhi", "region": "Asia", "population": 1380004385,
     "flag": "https://flagcdn.com/in.svg", "currencies": [{"code": "INR"}]},
    {"name": "Antarctica", "region": "Polar", "population": 1000, "currencies": []},
]

SAMPLE_RATES = {"NGN": 1600.23, "GHS": 15.3, "JPY": 149.5, "INR": 83.2}


@pytest.fixture
def cache_dir(settings, tmp_path):
    path = tmp_path / "cache"
    settings.SUMMARY_CACHE_DIR = str(path)
    return path


@pytest.fixture
def fetcher():
    return FakeFetcher(SAMPLE_COUNTRIES, SAMPLE_RATES)


@pytest.fixture
def refresher(cache_dir, fetcher):
    return CatalogRefresher(fetcher, RecordTransformer(rng=FixedRandom(0.5)), RefreshState())


@pytest.fixture
def app_refresher(monkeypatch, refresher):
    """Install the test refresher as the one the views and commands use."""
    monkeypatch.setattr(apps.get_app_config("countries"), "refresher", refresher)
    return refresher


@pytest.fixture
def upstream_down():
    return UpstreamUnavailable("exchange_rates", "Read timed out.", url="https://rates.test")
