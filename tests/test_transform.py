from decimal import Decimal

import pytest

from countries.transform import RecordTransformer, first_currency_code, parse_rate

from .conftest import FixedRandom


@pytest.fixture
def transformer():
    return RecordTransformer(rng=FixedRandom(0.5))


def test_wakanda_gets_estimate_from_rate(transformer):
    entry = {"name": "Wakanda", "population": 1000000, "currencies": [{"code": "WKD"}], "flag": "url"}

    row = transformer.transform(entry, {"WKD": 10})

    # multiplier 1500 = 1000 + 0.5 * (2000 - 1000)
    assert row.estimated_gdp == Decimal("150000000")
    assert Decimal("1e8") < row.estimated_gdp < Decimal("2e8")
    assert row.currency_code == "WKD"
    assert row.exchange_rate == Decimal("10")
    assert row.flag_url == "url"
    assert row.capital is None and row.region is None


def test_default_randomness_stays_in_range():
    transformer = RecordTransformer()
    entry = {"name": "Wakanda", "population": 1000000, "currencies": [{"code": "WKD"}]}

    for _ in range(50):
        gdp = transformer.transform(entry, {"WKD": 10}).estimated_gdp
        assert Decimal("1e8") <= gdp < Decimal("2e8")


def test_multiplier_range_is_configurable():
    transformer = RecordTransformer(multiplier_min=10, multiplier_max=20, rng=FixedRandom(0.0))
    row = transformer.transform({"name": "X", "population": 100, "currencies": [{"code": "USD"}]}, {"USD": 1})
    assert row.estimated_gdp == Decimal("1000")


def test_inverted_multiplier_range_rejected():
    with pytest.raises(ValueError):
        RecordTransformer(multiplier_min=2000, multiplier_max=1000)


def test_empty_currencies_gives_null_estimate(transformer):
    row = transformer.transform({"name": "Antarctica", "population": 1000, "currencies": []}, {"USD": 1})

    assert row.currency_code is None
    assert row.exchange_rate is None
    assert row.estimated_gdp is None


def test_unknown_currency_keeps_code_but_no_estimate(transformer):
    row = transformer.transform({"name": "Atlantis", "population": 5, "currencies": [{"code": "ATL"}]}, {"USD": 1})

    assert row.currency_code == "ATL"
    assert row.exchange_rate is None
    assert row.estimated_gdp is None


@pytest.mark.parametrize("rate", [0, -3, "abc", None, True])
def test_unusable_rate_gives_null_estimate(transformer, rate):
    row = transformer.transform({"name": "X", "population": 5, "currencies": [{"code": "XXX"}]}, {"XXX": rate})
    assert row.estimated_gdp is None


@pytest.mark.parametrize("entry", [
    {"population": 10},
    {"name": "", "population": 10},
    {"name": "NoPop"},
    {"name": "NullPop", "population": None},
    {"name": "Negative", "population": -1},
    {"name": "Text", "population": "lots"},
    "not a dict",
])
def test_invalid_entries_are_skipped(transformer, entry):
    assert transformer.transform(entry, {}) is None


def test_zero_population_is_kept(transformer):
    row = transformer.transform({"name": "Empty", "population": 0, "currencies": [{"code": "USD"}]}, {"USD": 1})
    assert row.population == 0
    assert row.estimated_gdp == Decimal("0")


def test_batch_skips_bad_entries_without_affecting_others(transformer):
    entries = [
        {"name": "Good", "population": 10, "currencies": [{"code": "USD"}]},
        {"name": "Bad"},
        {"population": 3},
        {"name": "Other", "population": 20},
    ]

    result = transformer.transform_batch(entries, {"USD": 1})

    assert [r.name for r in result.rows] == ["Good", "Other"]
    assert result.skipped == 2


def test_batch_keeps_last_duplicate(transformer):
    entries = [
        {"name": "Twin", "population": 1},
        {"name": "Twin", "population": 2},
    ]

    result = transformer.transform_batch(entries, {})

    assert len(result.rows) == 1
    assert result.rows[0].population == 2


def test_first_currency_code():
    assert first_currency_code({"currencies": [{"code": "EUR"}, {"code": "USD"}]}) == "EUR"
    assert first_currency_code({"currencies": [{"name": "no code"}]}) is None
    assert first_currency_code({}) is None


def test_parse_rate():
    assert parse_rate(1.5) == Decimal("1.5")
    assert parse_rate("2") == Decimal("2")
    assert parse_rate(0) is None
    assert parse_rate(float("nan")) is None


def test_rate_too_small_to_store_gives_no_estimate(transformer):
    row = transformer.transform({"name": "Tiny", "population": 5, "currencies": [{"code": "TNY"}]}, {"TNY": 4e-7})

    assert row.currency_code == "TNY"
    assert row.exchange_rate is None
    assert row.estimated_gdp is None


def test_estimate_uses_stored_rate(transformer):
    row = transformer.transform({"name": "X", "population": 1000, "currencies": [{"code": "XXX"}]}, {"XXX": 0.0000026})

    assert row.exchange_rate == Decimal("0.000003")
    assert row.estimated_gdp == (Decimal(1000) * Decimal(1500) / Decimal("0.000003")).quantize(Decimal("0.00001"))
