import logging
from typing import List, Optional

import requests

from xmrwatch.config import DEFAULT_TELEGRAM_API_URL
from xmrwatch.errors import DeliveryFailure

log = logging.getLogger(__name__)

TELEGRAM_MAX_LENGTH = 3900  # reserve a small safety margin below 4096 chars


def _split_message(text: str, limit: int = TELEGRAM_MAX_LENGTH) -> List[str]:
    """Split ``text`` into Telegram-safe chunks of ``limit`` characters."""

    if len(text) <= limit:
        return [text]

    lines = text.splitlines()
    chunks: List[str] = []
    current: List[str] = []
    current_len = 0

    def _flush() -> None:
        nonlocal current, current_len
        if current:
            chunks.append("\n".join(current).strip())
            current = []
            current_len = 0

    for line in lines:
        extra = len(line) + 1  # newline
        if current and current_len + extra > limit:
            _flush()
        if len(line) > limit:
            _flush()
            for start in range(0, len(line), limit):
                chunks.append(line[start : start + limit])
            continue
        current.append(line)
        current_len += extra

    _flush()
    return [chunk for chunk in chunks if chunk]


class TelegramTransport:
    """Sends plain-text messages through the Bot API ``sendMessage`` method.

    Instances are callables ``(chat_id, text) -> None`` suitable as the
    dispatcher transport; any failure raises :class:`DeliveryFailure`.
    """

    def __init__(
        self,
        token: str,
        api_url: str = DEFAULT_TELEGRAM_API_URL,
        proxy: Optional[str] = None,
        timeout: float = 10,
        session: Optional[requests.Session] = None,
    ):
        self.url = f"{api_url.rstrip('/')}/bot{token}/sendMessage"
        self.timeout = timeout
        self.session = session or requests.Session()
        if proxy:
            self.session.proxies.update({"http": proxy, "https": proxy})

    def __call__(self, chat_id: int, text: str) -> None:
        chunks = _split_message(text)
        if len(chunks) > 1:
            log.info("splitting message to %s into %s parts (length %s)", chat_id, len(chunks), len(text))
        for idx, chunk in enumerate(chunks, start=1):
            self._send_chunk(chat_id, chunk, idx)

    def _send_chunk(self, chat_id: int, chunk: str, idx: int) -> None:
        try:
            r = self.session.post(
                self.url,
                data={"chat_id": chat_id, "text": chunk},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise DeliveryFailure(f"telegram request failed: {exc}") from exc

        try:
            ok = r.ok and r.json().get("ok", False)
        except ValueError:
            ok = False
        if not ok:
            raise DeliveryFailure(f"telegram api response (part {idx}): {r.text}")
        log.debug("telegram message sent to %s (part %s)", chat_id, idx)
