import pytest
from django.core.management import CommandError, call_command

from countries.models import Country

from .conftest import SAMPLE_COUNTRIES

pytestmark = pytest.mark.django_db


def test_refresh_command(app_refresher, capsys):
    call_command("refresh_countries")

    assert Country.objects.count() == len(SAMPLE_COUNTRIES)
    assert f"{len(SAMPLE_COUNTRIES)} fetched" in capsys.readouterr().out


def test_refresh_command_failure(app_refresher, fetcher, upstream_down):
    fetcher.error = upstream_down

    with pytest.raises(CommandError):
        call_command("refresh_countries")
