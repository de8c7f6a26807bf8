# xmrwatch/config.py
from __future__ import annotations

import os
from pathlib import Path

# --- .env only locally (not in GitHub Actions CI), unless explicitly allowed ---
if not os.getenv("GITHUB_ACTIONS") or os.getenv("ALLOW_DOTENV") == "1":
    try:
        from dotenv import find_dotenv, load_dotenv

        env_path = find_dotenv(usecwd=True)
        if env_path:
            load_dotenv(env_path, override=False)  # do not clobber CI secrets
        else:
            local_env = Path(__file__).with_name(".env")
            if local_env.exists():
                load_dotenv(local_env, override=False)
    except OSError:
        pass


DEFAULT_FETCH_INTERVAL = 10
DEFAULT_PRICE_API_URL = "https://min-api.cryptocompare.com/data/price"
DEFAULT_TELEGRAM_API_URL = "https://api.telegram.org"


def _get(*keys: str) -> str | None:
    for k in keys:
        v = os.getenv(k)
        if v is not None and str(v).strip() != "":
            return v.strip()
    return None


def _as_int(v: str | None, default: int) -> int:
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        return default


class Settings:
    XMRWATCH_DB_PATH = _get("XMRWATCH_DB_PATH") or "data/xmrwatch.duckdb"
    DB_CONNECT_RETRIES = _as_int(_get("DB_CONNECT_RETRIES"), 5)

    # Telegram; TELEGRAM_API_URL points the bot at a debug endpoint
    TELEGRAM_BOT_TOKEN = _get("TELEGRAM_BOT_TOKEN")
    TELEGRAM_API_URL = _get("TELEGRAM_API_URL") or DEFAULT_TELEGRAM_API_URL

    # CryptoCompare: accept both spellings
    CRYPTOCOMPARE_API_KEY = _get("CRYPTOCOMPARE_API_KEY", "CRYPTO_COMPARE_API_KEY")
    PRICE_API_URL = _get("PRICE_API_URL") or DEFAULT_PRICE_API_URL
    FETCH_INTERVAL = _as_int(_get("FETCH_INTERVAL"), DEFAULT_FETCH_INTERVAL)

    NETWORK_PROXY = _get("NETWORK_PROXY", "HTTPS_PROXY")
    REQUEST_TIMEOUT = _as_int(_get("REQUEST_TIMEOUT"), 5)
    MAX_RETRIES = _as_int(_get("MAX_RETRIES"), 5)

    LOG_LEVEL = _get("LOG_LEVEL") or "INFO"
    LOG_FILE = _get("LOG_FILE")


settings = Settings()


def validate_config(require_telegram: bool = True) -> None:
    missing = []
    if require_telegram and not settings.TELEGRAM_BOT_TOKEN:
        missing.append("TELEGRAM_BOT_TOKEN")
    if missing:
        raise ValueError("Missing required environment variables: " + ", ".join(missing))
