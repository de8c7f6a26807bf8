"""Parsing and rendering of the ``/xmrAlert`` and ``/xmrPrice`` commands."""

from __future__ import annotations

import logging
import math
import re
from typing import Callable, Dict, List

from xmrwatch.errors import InvalidParameters, XmrWatchError
from xmrwatch.price import CURRENCIES, Currency, PriceQuote, format_price
from xmrwatch.registry import SubscriberRegistry

log = logging.getLogger(__name__)

ALERT_COMMAND = "/xmralert"
PRICE_COMMAND = "/xmrprice"

ALERT_HELP_MESSAGE = """
Usage: /xmrAlert <Subcommand>

Subcommands:
    - help
        Show this help message.
    - list
        List all alerts.
        Each row of the response message presents an alert, which is organized in the following format:
          <index>: <price>
        The index can be used to remove an alert.
    - add <currency> <price>
        Add an alert
        - currency
          Could be one of btc, usd, eur and cny
        - price
          A number
    - remove <currency> <index>
        Remove an alert.
    - removeAll
        Remove all the alerts.
"""

_PRICE_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_INDEX_RE = re.compile(r"[+-]?[0-9]+")
_INDEX_MAX = 2**31

SubCommand = Callable[[SubscriberRegistry, int, List[str]], str]


def _parse_price(text: str) -> float:
    # ASCII decimal with optional fraction and exponent
    if not _PRICE_RE.fullmatch(text):
        raise InvalidParameters()
    price = float(text)
    if not math.isfinite(price):
        raise InvalidParameters()
    return price


def _parse_index(text: str) -> int:
    # 32-bit signed, ASCII decimal only
    if not _INDEX_RE.fullmatch(text):
        raise InvalidParameters()
    index = int(text)
    if not -_INDEX_MAX <= index < _INDEX_MAX:
        raise InvalidParameters()
    return index


# ---------- subcommands ----------


def list_alerts(registry: SubscriberRegistry, chat_id: int, parameters: List[str]) -> str:
    if parameters:
        raise InvalidParameters()
    listing = registry.list_alerts(chat_id)
    lines: List[str] = []
    for currency in CURRENCIES:
        lines.append(f"{currency.value}:")
        lines += [f"    {index}: {format_price(price)}" for index, price in listing[currency]]
    return "\n".join(lines) + "\n"


def add_alert(registry: SubscriberRegistry, chat_id: int, parameters: List[str]) -> str:
    if len(parameters) != 2:
        raise InvalidParameters()
    currency = Currency.parse(parameters[0])
    price = _parse_price(parameters[1])
    registry.add_alert(chat_id, currency, price)
    return f"Alert added: ({currency}) {format_price(price)}"


def remove_alert(registry: SubscriberRegistry, chat_id: int, parameters: List[str]) -> str:
    if len(parameters) != 2:
        raise InvalidParameters()
    currency = Currency.parse(parameters[0])
    index = _parse_index(parameters[1])
    registry.remove_alert(chat_id, currency, index)
    return "Alert removed"


def remove_all_alerts(registry: SubscriberRegistry, chat_id: int, parameters: List[str]) -> str:
    if parameters:
        raise InvalidParameters()
    registry.clear_alerts(chat_id)
    return "All alert removed"


SUBCOMMANDS: Dict[str, SubCommand] = {
    "add": add_alert,
    "remove": remove_alert,
    "removeAll": remove_all_alerts,
    "list": list_alerts,
}


def handle_alert_command(registry: SubscriberRegistry, chat_id: int, text: str) -> str:
    """Run one ``/xmrAlert ...`` message and return the reply text.

    Never raises: failures are rendered as ``Error: ...`` followed by the help.
    """
    parts = text.split()
    sub = parts[1] if len(parts) > 1 else "help"
    handler = SUBCOMMANDS.get(sub)
    if handler is None:
        return ALERT_HELP_MESSAGE

    try:
        return handler(registry, chat_id, parts[2:])
    except XmrWatchError as exc:
        log.warning("subcommand %s failed for chat %s: %s", sub, chat_id, exc)
        return f"Error: {exc}\n\n{ALERT_HELP_MESSAGE}"
    except Exception:  # noqa: BLE001
        log.exception("subcommand %s crashed for chat %s", sub, chat_id)
        return f"Error: internal error\n\n{ALERT_HELP_MESSAGE}"


def price_message(price: PriceQuote) -> str:
    return "\n" + price.format() + "\n"


__all__ = [
    "ALERT_COMMAND",
    "PRICE_COMMAND",
    "ALERT_HELP_MESSAGE",
    "SUBCOMMANDS",
    "handle_alert_command",
    "price_message",
]
