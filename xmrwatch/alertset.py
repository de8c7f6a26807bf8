"""Per-chat alert thresholds, kept sorted per currency."""

from __future__ import annotations

import bisect
import math
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from xmrwatch.errors import IndexOutOfRange, InvalidParameters
from xmrwatch.price import CURRENCIES, Currency


class AlertSet:
    """Per-subscriber thresholds, one ascending list per currency.

    An index reported by :meth:`list` is only valid until the next
    :meth:`add` for the same currency.
    """

    __slots__ = ("_prices",)

    def __init__(self, prices: Optional[Mapping[Currency, Iterable[float]]] = None):
        self._prices: Dict[Currency, List[float]] = {c: [] for c in CURRENCIES}
        for currency, values in (prices or {}).items():
            self._prices[currency] = sorted(float(v) for v in values)

    def add(self, currency: Currency, price: float) -> None:
        price = float(price)
        if not math.isfinite(price):
            raise InvalidParameters(f"invalid price: {price}")
        bisect.insort(self._prices[currency], price)

    def remove_at(self, currency: Currency, index: int) -> float:
        prices = self._prices[currency]
        if index < 0 or index >= len(prices):
            raise IndexOutOfRange(index)
        return prices.pop(index)

    def clear(self) -> None:
        for currency in CURRENCIES:
            self._prices[currency] = []

    def list(self) -> Dict[Currency, List[Tuple[int, float]]]:
        return {c: list(enumerate(self._prices[c])) for c in CURRENCIES}

    def prices(self, currency: Currency) -> Tuple[float, ...]:
        return tuple(self._prices[currency])

    def copy(self) -> "AlertSet":
        return AlertSet(self._prices)

    def is_empty(self) -> bool:
        return not any(self._prices.values())

    def __len__(self) -> int:
        return sum(len(v) for v in self._prices.values())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AlertSet):
            return NotImplemented
        return self._prices == other._prices

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        body = ", ".join(f"{c.value}={self._prices[c]}" for c in CURRENCIES)
        return f"AlertSet({body})"

    # ---------- persistence ----------

    def to_record(self) -> Dict[str, List[float]]:
        return {str(c): list(self._prices[c]) for c in CURRENCIES}

    @classmethod
    def from_record(cls, record: Mapping[str, Optional[Iterable[float]]]) -> "AlertSet":
        return cls({c: record.get(str(c)) or [] for c in CURRENCIES})


__all__ = ["AlertSet"]
