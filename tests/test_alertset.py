import math
import random

import pytest

from xmrwatch.alertset import AlertSet
from xmrwatch.errors import IndexOutOfRange, InvalidParameters
from xmrwatch.price import CURRENCIES, Currency


def test_add_keeps_lists_sorted():
    rng = random.Random(42)
    alerts = AlertSet()
    values = [round(rng.uniform(0, 500), 2) for _ in range(50)]
    for v in values:
        alerts.add(Currency.USD, v)
    prices = alerts.prices(Currency.USD)
    assert len(prices) == 50
    assert list(prices) == sorted(values)
    assert alerts.prices(Currency.EUR) == ()


def test_add_allows_duplicates():
    alerts = AlertSet()
    alerts.add(Currency.BTC, 0.5)
    alerts.add(Currency.BTC, 0.5)
    assert alerts.prices(Currency.BTC) == (0.5, 0.5)


@pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
def test_add_rejects_non_finite(bad):
    alerts = AlertSet()
    with pytest.raises(InvalidParameters):
        alerts.add(Currency.USD, bad)
    assert alerts.is_empty()


def test_remove_at_preserves_order():
    alerts = AlertSet({Currency.EUR: [10, 20, 30, 40]})
    removed = alerts.remove_at(Currency.EUR, 1)
    assert removed == 20
    assert [p for _, p in alerts.list()[Currency.EUR]] == [10, 30, 40]


@pytest.mark.parametrize("index", [-1, 3, 4])
def test_remove_at_out_of_range_leaves_list_unchanged(index):
    alerts = AlertSet({Currency.EUR: [10, 20, 30]})
    with pytest.raises(IndexOutOfRange):
        alerts.remove_at(Currency.EUR, index)
    assert alerts.prices(Currency.EUR) == (10, 20, 30)


def test_clear_empties_every_currency():
    alerts = AlertSet({c: [1, 2] for c in CURRENCIES})
    alerts.clear()
    assert all(entries == [] for entries in alerts.list().values())
    assert len(alerts) == 0


def test_list_reports_indices_in_sorted_order():
    alerts = AlertSet()
    for v in (300, 100, 200):
        alerts.add(Currency.CNY, v)
    assert alerts.list()[Currency.CNY] == [(0, 100.0), (1, 200.0), (2, 300.0)]


def test_copy_is_independent():
    alerts = AlertSet({Currency.USD: [1]})
    clone = alerts.copy()
    clone.add(Currency.USD, 2)
    assert alerts.prices(Currency.USD) == (1,)
    assert clone != alerts


def test_record_round_trip_sorts_and_fills_missing():
    restored = AlertSet.from_record({"usd": [3, 1, 2], "btc": None})
    assert restored.prices(Currency.USD) == (1, 2, 3)
    assert restored.prices(Currency.BTC) == ()
    assert restored.to_record() == {"btc": [], "usd": [1.0, 2.0, 3.0], "eur": [], "cny": []}
