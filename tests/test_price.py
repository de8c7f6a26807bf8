import math

import pytest
import requests

from xmrwatch.errors import FetchError, InvalidParameters
from xmrwatch.price import Currency, PriceQuote, PriceSource, format_price

PAYLOAD = {"BTC": 0.0061, "USD": 160.5, "EUR": 148.2, "CNY": 1150}


class DummyResponse:
    def __init__(self, payload=None, status=200, bad_json=False):
        self._payload = payload
        self.status_code = status
        self._bad_json = bad_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._bad_json:
            raise ValueError("no json")
        return self._payload


class DummySession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.proxies = {}
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return self.response


def test_currency_parse_is_case_insensitive():
    assert Currency.parse("usd") is Currency.USD
    assert Currency.parse("CnY") is Currency.CNY
    assert str(Currency.BTC) == "btc"
    with pytest.raises(InvalidParameters):
        Currency.parse("xmr")


def test_format_price():
    assert format_price(1000.0) == "1000"
    assert format_price(0.0061) == "0.0061"
    assert format_price(12.5) == "12.5"


def test_quote_from_payload_and_lookup():
    quote = PriceQuote.from_payload(PAYLOAD)
    assert quote == PriceQuote(btc=0.0061, usd=160.5, eur=148.2, cny=1150.0)
    assert quote[Currency.EUR] == 148.2
    assert isinstance(quote.cny, float)


@pytest.mark.parametrize(
    "payload",
    [
        {"BTC": 1, "USD": 2, "EUR": 3},
        {"BTC": 1, "USD": 2, "EUR": 3, "CNY": 4, "GBP": 5},
        {"BTC": 1, "USD": "2", "EUR": 3, "CNY": 4},
        {"BTC": True, "USD": 2, "EUR": 3, "CNY": 4},
        {"BTC": -1, "USD": 2, "EUR": 3, "CNY": 4},
        {"BTC": math.inf, "USD": 2, "EUR": 3, "CNY": 4},
        [1, 2, 3, 4],
    ],
)
def test_quote_from_payload_rejects_malformed(payload):
    with pytest.raises(FetchError):
        PriceQuote.from_payload(payload)


def test_quote_from_payload_reports_api_error():
    with pytest.raises(FetchError, match="rate limit"):
        PriceQuote.from_payload({"Response": "Error", "Message": "rate limit"})


def test_quote_format():
    text = PriceQuote(btc=0.0061, usd=160.5, eur=148.2, cny=1150).format()
    assert text.splitlines() == [
        "Current XMR Price",
        "    BTC: 0.0061",
        "    USD: 160.5",
        "    EUR: 148.2",
        "    CNY: 1150",
    ]


def test_fetch_sends_api_key_and_timeout():
    session = DummySession(DummyResponse(PAYLOAD))
    source = PriceSource(api_key="secret", url="http://prices.test/data", timeout=3, session=session)
    quote = source.fetch()
    assert quote.usd == 160.5
    call = session.calls[0]
    assert call["url"] == "http://prices.test/data"
    assert call["timeout"] == 3
    assert call["params"]["fsym"] == "XMR"
    assert call["params"]["tsyms"] == "BTC,USD,EUR,CNY"
    assert call["params"]["api_key"] == "secret"


def test_fetch_without_api_key_and_with_proxy():
    session = DummySession(DummyResponse(PAYLOAD))
    source = PriceSource(proxy="http://proxy:3128", session=session)
    source.fetch()
    assert "api_key" not in session.calls[0]["params"]
    assert session.proxies == {"http": "http://proxy:3128", "https": "http://proxy:3128"}


@pytest.mark.parametrize(
    "session",
    [
        DummySession(exc=requests.ConnectionError("down")),
        DummySession(DummyResponse(PAYLOAD, status=503)),
        DummySession(DummyResponse(bad_json=True)),
        DummySession(DummyResponse({"BTC": 1})),
    ],
)
def test_fetch_failures_raise_fetch_error(session):
    with pytest.raises(FetchError):
        PriceSource(session=session).fetch()
