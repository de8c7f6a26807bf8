import asyncio
import logging
import types

import pytest

from xmrwatch import bot
from xmrwatch.errors import StartupError


class DummyMessage:
    def __init__(self, text: str, chat_id: int = 42):
        self.text = text
        self.chat_id = chat_id
        self.replies = []

    async def reply_text(self, text: str) -> None:
        self.replies.append(text)


class DummyService:
    def __init__(self):
        self.calls = []

    def handle_alert(self, chat_id, text):
        self.calls.append((chat_id, text))
        return "Alert added: (usd) 1000"

    def handle_price(self):
        return "Current XMR Price"


def _context(service):
    return types.SimpleNamespace(bot_data={bot.SERVICE_KEY: service})


def test_cmd_alert_replies_with_command_result():
    service = DummyService()
    update = types.SimpleNamespace(message=DummyMessage("/xmrAlert add usd 1000"))
    asyncio.run(bot.cmd_alert(update, _context(service)))
    assert service.calls == [(42, "/xmrAlert add usd 1000")]
    assert update.message.replies == ["Alert added: (usd) 1000"]


def test_cmd_price_replies_with_price():
    update = types.SimpleNamespace(message=DummyMessage("/xmrPrice"))
    asyncio.run(bot.cmd_price(update, _context(DummyService())))
    assert update.message.replies == ["Current XMR Price"]


def test_handlers_ignore_updates_without_message():
    service = DummyService()
    update = types.SimpleNamespace(message=None)
    asyncio.run(bot.cmd_alert(update, _context(service)))
    asyncio.run(bot.cmd_price(update, _context(service)))
    assert service.calls == []


def test_parse_args_defaults():
    args = bot.parse_args([])
    assert args.log_level is None
    assert args.log_file is None
    args = bot.parse_args(["--log-level", "DEBUG", "--db-path", "x.duckdb"])
    assert args.log_level == "DEBUG"
    assert args.db_path == "x.duckdb"


def test_main_exits_on_startup_error(monkeypatch):
    def fail(cfg):
        raise StartupError("failed to fetch initial xmr price")

    monkeypatch.setattr(bot, "setup_logging", lambda level, log_file=None: None)
    monkeypatch.setattr(bot, "validate_config", lambda require_telegram=True: None)
    monkeypatch.setattr(bot.XmrWatchService, "from_settings", staticmethod(fail))
    assert bot.main([]) == 1


def test_main_exits_without_token(monkeypatch):
    monkeypatch.setattr(bot, "setup_logging", lambda level, log_file=None: None)
    monkeypatch.setattr(bot.settings, "TELEGRAM_BOT_TOKEN", None)
    assert bot.main([]) == 1


@pytest.mark.parametrize("level, expected", [("DEBUG", logging.DEBUG), ("warning", logging.WARNING)])
def test_setup_logging_with_unwritable_file(tmp_path, monkeypatch, caplog, level, expected):
    configured = {}
    monkeypatch.setattr(bot.logging, "basicConfig", lambda **kwargs: configured.update(kwargs))
    missing_dir = tmp_path / "nope" / "bot.log"

    with caplog.at_level(logging.WARNING, logger=bot.__name__):
        bot.setup_logging(level, str(missing_dir))

    assert configured["level"] == expected
    assert [type(h) for h in configured["handlers"]] == [logging.StreamHandler]
    assert "failed to open log file" in caplog.text


def test_setup_logging_adds_file_handler(tmp_path, monkeypatch):
    configured = {}
    monkeypatch.setattr(bot.logging, "basicConfig", lambda **kwargs: configured.update(kwargs))
    log_file = tmp_path / "bot.log"

    bot.setup_logging("INFO", str(log_file))

    handlers = configured["handlers"]
    assert isinstance(handlers[-1], logging.FileHandler)
    assert handlers[-1].baseFilename == str(log_file)
    for handler in handlers:
        handler.close()
