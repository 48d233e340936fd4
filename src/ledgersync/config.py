"""
Configuration constants and environment settings for ledgersync.
"""

import logging
import os
from dataclasses import dataclass

# Poll periods per domain (seconds). Each domain service also uses its period
# as the minimum spacing between two network fetches.
TOKENS_FETCH_INTERVAL = 30
TRANSFERS_FETCH_INTERVAL = 60
STREAMS_FETCH_INTERVAL = 120

# Local recomputation of streamed amounts, no network round trip
STREAMS_UI_UPDATE_INTERVAL = 5

# Cache defaults
DEFAULT_CACHE_TTL = 300  # 5 minutes

# Receipt polling while a write is confirming
RECEIPT_POLL_INTERVAL_SECONDS = 2.0

# Event socket reconnection
MAX_RECONNECT_ATTEMPTS = 5
RECONNECT_DELAY_SECONDS = 5


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return float(default)
    return float(raw)


@dataclass(frozen=True)
class Settings:
    api_url: str
    ws_url: str | None
    account: str
    log_level: int = logging.INFO
    log_file: str = "ledgersync.log"
    tokens_interval: float = TOKENS_FETCH_INTERVAL
    transfers_interval: float = TRANSFERS_FETCH_INTERVAL
    streams_interval: float = STREAMS_FETCH_INTERVAL
    streams_ui_interval: float = STREAMS_UI_UPDATE_INTERVAL
    receipt_poll_interval: float = RECEIPT_POLL_INTERVAL_SECONDS


def load_settings() -> Settings:
    """
    Build settings from environment variables.

    ## Environment Variables
    - `LEDGER_API_URL` (required): base URL of the ledger indexer REST API
    - `LEDGER_ACCOUNT` (required): account address whose data is synchronized
    - `LEDGER_WS_URL`: event socket URL, connectivity watching is off without it
    - `LOG_LEVEL`, `LOG_FILE`
    - `TOKENS_FETCH_INTERVAL`, `TRANSFERS_FETCH_INTERVAL`,
      `STREAMS_FETCH_INTERVAL`, `STREAMS_UI_UPDATE_INTERVAL`,
      `RECEIPT_POLL_INTERVAL_SECONDS`: overrides in seconds

    ## Raises
    - `ValueError` when a required variable is missing
    """
    api_url = os.getenv("LEDGER_API_URL", "").strip()
    account = os.getenv("LEDGER_ACCOUNT", "").strip()

    missing = [
        name
        for name, value in (("LEDGER_API_URL", api_url), ("LEDGER_ACCOUNT", account))
        if not value
    ]
    if missing:
        raise ValueError(f"Missing environment variables: {', '.join(missing)}")

    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = logging.getLevelName(level_name)
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown LOG_LEVEL: {level_name}")

    return Settings(
        api_url=api_url,
        ws_url=os.getenv("LEDGER_WS_URL") or None,
        account=account,
        log_level=log_level,
        log_file=os.getenv("LOG_FILE", "ledgersync.log"),
        tokens_interval=_env_float("TOKENS_FETCH_INTERVAL", TOKENS_FETCH_INTERVAL),
        transfers_interval=_env_float(
            "TRANSFERS_FETCH_INTERVAL", TRANSFERS_FETCH_INTERVAL
        ),
        streams_interval=_env_float("STREAMS_FETCH_INTERVAL", STREAMS_FETCH_INTERVAL),
        streams_ui_interval=_env_float(
            "STREAMS_UI_UPDATE_INTERVAL", STREAMS_UI_UPDATE_INTERVAL
        ),
        receipt_poll_interval=_env_float(
            "RECEIPT_POLL_INTERVAL_SECONDS", RECEIPT_POLL_INTERVAL_SECONDS
        ),
    )
