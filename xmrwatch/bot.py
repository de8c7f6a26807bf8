"""Telegram bot command handlers using python-telegram-bot v21."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional

from telegram import Update
from telegram.ext import Application, CommandHandler, ContextTypes

from xmrwatch.commands import ALERT_COMMAND, PRICE_COMMAND
from xmrwatch.config import Settings, settings, validate_config
from xmrwatch.errors import StartupError
from xmrwatch.service import XmrWatchService

log = logging.getLogger(__name__)

SERVICE_KEY = "service"
POLL_TIMEOUT = 6


def _service(context: ContextTypes.DEFAULT_TYPE) -> XmrWatchService:
    return context.bot_data[SERVICE_KEY]


async def cmd_alert(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle `/xmrAlert` commands."""
    if not update.message:
        return
    service = _service(context)
    chat_id = update.message.chat_id
    text = update.message.text or ""
    reply = await asyncio.to_thread(service.handle_alert, chat_id, text)
    await update.message.reply_text(reply)


async def cmd_price(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Reply with the current XMR price."""
    if not update.message:
        return
    await update.message.reply_text(_service(context).handle_price())


async def _on_shutdown(app: Application) -> None:
    service: Optional[XmrWatchService] = app.bot_data.get(SERVICE_KEY)
    if service is not None:
        await asyncio.to_thread(service.stop)


def build_application(service: XmrWatchService, cfg: Settings = settings) -> Application:
    builder = (
        Application.builder()
        .token(cfg.TELEGRAM_BOT_TOKEN)
        .base_url(f"{cfg.TELEGRAM_API_URL.rstrip('/')}/bot")
        .post_shutdown(_on_shutdown)
    )
    if cfg.NETWORK_PROXY:
        builder = builder.proxy(cfg.NETWORK_PROXY).get_updates_proxy(cfg.NETWORK_PROXY)
    app = builder.build()
    app.bot_data[SERVICE_KEY] = service
    app.add_handler(CommandHandler(ALERT_COMMAND.lstrip("/"), cmd_alert))
    app.add_handler(CommandHandler(PRICE_COMMAND.lstrip("/"), cmd_price))
    return app


# ---------- CLI ----------


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="XMR price alert bot")
    p.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: LOG_LEVEL or INFO)",
    )
    p.add_argument("--log-file", default=None, help="Also append logs to this file")
    p.add_argument("--db-path", default=None, help="DuckDB file (default: XMRWATCH_DB_PATH)")
    return p.parse_args(argv)


def setup_logging(level: str, log_file: Optional[str] = None) -> None:
    handlers = [logging.StreamHandler()]
    file_error = None
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
        except OSError as exc:
            file_error = exc
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )
    if file_error is not None:
        log.warning("failed to open log file: %s", file_error)


def main(argv=None) -> int:
    """Run the Telegram bot until interrupted."""
    args = parse_args(argv)
    setup_logging(args.log_level or settings.LOG_LEVEL, args.log_file or settings.LOG_FILE)
    if args.db_path:
        settings.XMRWATCH_DB_PATH = args.db_path

    try:
        validate_config(require_telegram=True)
        service = XmrWatchService.from_settings(settings)
    except (ValueError, StartupError) as exc:
        log.error("failed to set up bot: %s", exc)
        return 1

    app = build_application(service)
    service.start()
    try:
        app.run_polling(allowed_updates=["message"], timeout=POLL_TIMEOUT)
    finally:
        service.stop()
    return 0


if __name__ == "__main__":  # pragma: no cover - manual execution only
    sys.exit(main())
