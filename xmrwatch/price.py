"""
XMR price quotes and the CryptoCompare price source.

The source performs exactly one HTTP request per ``fetch()``; retry policy
lives in :mod:`xmrwatch.watcher`.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import requests

from xmrwatch.config import DEFAULT_PRICE_API_URL
from xmrwatch.errors import FetchError, InvalidParameters

log = logging.getLogger(__name__)

ASSET_SYMBOL = "XMR"


class Currency(Enum):
    BTC = "BTC"
    USD = "USD"
    EUR = "EUR"
    CNY = "CNY"

    def __str__(self) -> str:
        return self.value.lower()

    @classmethod
    def parse(cls, text: str) -> "Currency":
        """``"usd"``/``"USD"`` -> ``Currency.USD``; raises :class:`InvalidParameters`."""
        try:
            return cls(text.strip().upper())
        except ValueError:
            raise InvalidParameters() from None


CURRENCIES = tuple(Currency)


def format_price(value: float) -> str:
    """Shortest round-trip repr without a trailing ``.0`` (1000.0 -> ``1000``)."""
    text = repr(float(value))
    if text.endswith(".0"):
        text = text[:-2]
    return text


@dataclass(frozen=True)
class PriceQuote:
    """Value of one XMR in every supported currency at the same instant."""

    btc: float
    usd: float
    eur: float
    cny: float

    def __getitem__(self, currency: Currency) -> float:
        return getattr(self, currency.value.lower())

    def less(self, other: "PriceQuote") -> bool:
        # ordering is decided by the reference currency only
        return self.btc < other.btc

    def format(self) -> str:
        lines = [f"Current {ASSET_SYMBOL} Price"]
        lines += [f"    {c.value}: {format_price(self[c])}" for c in CURRENCIES]
        return "\n".join(lines)

    @classmethod
    def from_payload(cls, payload: Any) -> "PriceQuote":
        """Decode the flat CryptoCompare JSON object.

        The object must hold exactly the keys ``BTC``, ``USD``, ``EUR`` and
        ``CNY``, each a finite non-negative number.
        """
        if not isinstance(payload, dict):
            raise FetchError(f"unexpected price payload: {payload!r}")
        if payload.get("Response") == "Error":
            raise FetchError(f"price api error: {payload.get('Message', 'unknown error')}")

        expected = {c.value for c in CURRENCIES}
        keys = set(payload)
        if keys != expected:
            missing = sorted(expected - keys)
            extra = sorted(keys - expected)
            raise FetchError(f"malformed price payload (missing={missing}, extra={extra})")

        values: Dict[str, float] = {}
        for c in CURRENCIES:
            raw = payload[c.value]
            if isinstance(raw, bool) or not isinstance(raw, (int, float)):
                raise FetchError(f"non-numeric {c.value} price: {raw!r}")
            val = float(raw)
            if not math.isfinite(val) or val < 0:
                raise FetchError(f"invalid {c.value} price: {raw!r}")
            values[c.value.lower()] = val
        return cls(**values)


class PriceSource:
    """Fetches a fresh :class:`PriceQuote` from CryptoCompare."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        url: str = DEFAULT_PRICE_API_URL,
        proxy: Optional[str] = None,
        timeout: float = 5,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        if proxy:
            self.session.proxies.update({"http": proxy, "https": proxy})

    def _params(self) -> Dict[str, str]:
        params = {"fsym": ASSET_SYMBOL, "tsyms": ",".join(c.value for c in CURRENCIES)}
        if self.api_key:
            params["api_key"] = self.api_key
        return params

    def fetch(self) -> PriceQuote:
        try:
            r = self.session.get(self.url, params=self._params(), timeout=self.timeout)
            r.raise_for_status()
            payload = r.json()
        except requests.RequestException as exc:
            log.warning("failed to fetch xmr price: %s", exc)
            raise FetchError(str(exc)) from exc
        except ValueError as exc:
            log.warning("failed to decode xmr price: %s", exc)
            raise FetchError(f"invalid json: {exc}") from exc

        try:
            return PriceQuote.from_payload(payload)
        except FetchError as exc:
            log.warning("failed to decode xmr price: %s", exc)
            raise


__all__ = [
    "ASSET_SYMBOL",
    "CURRENCIES",
    "Currency",
    "PriceQuote",
    "PriceSource",
    "format_price",
]
