# config.py

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError


# ---------- DEFAULTS ----------
SHOPIFY_API_VERSION = "2023-10"
SHEET_RANGE = "A:L"
CREDENTIALS_FILE = "./credentials.json"
ORDER_PREFIX = "#TCO"
POLL_INTERVAL_SECONDS = 30
SEARCH_LIMIT = 250
PORT = 3000

SEARCH_MODES = ("rest", "graphql")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class Settings:
    shop_domain: str
    access_token: str
    spreadsheet_id: str
    credentials_json: Optional[str] = None
    credentials_file: str = CREDENTIALS_FILE
    sheet_range: str = SHEET_RANGE
    sheet_tab_id: int = 0
    api_version: str = SHOPIFY_API_VERSION
    webhook_secret: Optional[str] = None
    search_mode: str = "graphql"
    order_prefix: str = ORDER_PREFIX
    poll_interval: float = POLL_INTERVAL_SECONDS
    search_limit: int = SEARCH_LIMIT
    port: int = PORT
    log_level: str = "INFO"

    @property
    def uses_inline_credentials(self) -> bool:
        return bool(self.credentials_json)


def _int_setting(env: Mapping[str, str], name: str, default):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Read settings from `env` (defaults to os.environ after loading .env).

    Raises ConfigurationError naming every missing required variable.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    required = {
        "SHOPIFY_SHOP_DOMAIN": env.get("SHOPIFY_SHOP_DOMAIN"),
        "SHOPIFY_ACCESS_TOKEN": env.get("SHOPIFY_ACCESS_TOKEN"),
        "GOOGLE_SHEETS_SPREADSHEET_ID": env.get("GOOGLE_SHEETS_SPREADSHEET_ID"),
    }
    missing = [name for name, value in required.items() if not value]
    if missing:
        raise ConfigurationError(f"Missing configuration: {', '.join(missing)}")

    credentials_json = env.get("GOOGLE_SHEETS_CREDENTIALS") or None
    credentials_file = env.get("GOOGLE_SHEETS_CREDENTIALS_FILE") or CREDENTIALS_FILE
    if not credentials_json and not os.path.exists(credentials_file):
        raise ConfigurationError(
            "Google credentials not found: set GOOGLE_SHEETS_CREDENTIALS "
            f"or provide {credentials_file}"
        )

    search_mode = (env.get("ORDER_SEARCH_MODE") or "graphql").lower()
    if search_mode not in SEARCH_MODES:
        raise ConfigurationError(
            f"ORDER_SEARCH_MODE must be one of {', '.join(SEARCH_MODES)}, got {search_mode!r}"
        )

    return Settings(
        shop_domain=required["SHOPIFY_SHOP_DOMAIN"],
        access_token=required["SHOPIFY_ACCESS_TOKEN"],
        spreadsheet_id=required["GOOGLE_SHEETS_SPREADSHEET_ID"],
        credentials_json=credentials_json,
        credentials_file=credentials_file,
        sheet_range=env.get("GOOGLE_SHEETS_RANGE") or SHEET_RANGE,
        sheet_tab_id=_int_setting(env, "GOOGLE_SHEETS_SHEET_ID", 0),
        api_version=env.get("SHOPIFY_API_VERSION") or SHOPIFY_API_VERSION,
        webhook_secret=env.get("SHOPIFY_WEBHOOK_SECRET") or None,
        search_mode=search_mode,
        order_prefix=env.get("ORDER_PREFIX") or ORDER_PREFIX,
        poll_interval=_int_setting(env, "POLL_INTERVAL_SECONDS", POLL_INTERVAL_SECONDS),
        search_limit=_int_setting(env, "SEARCH_LIMIT", SEARCH_LIMIT),
        port=_int_setting(env, "PORT", PORT),
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
