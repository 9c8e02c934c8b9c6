"""Environment and CLI runtime configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Self

from dotenv import load_dotenv

from swapdesk.market.series import INTERVALS

DEFAULT_SWAP_URL = "http://localhost:8420"
DEFAULT_EQUITY_ASSET = "USD"


def parse_bool(value: str | None, default: bool) -> bool:
    """Parse truthy environment strings."""
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def parse_optional_positive_int(value: str | None, *, field_name: str) -> int | None:
    """Parse optional positive integer values from env strings."""
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None
    parsed = int(text)
    if parsed <= 0:
        raise ValueError(f"{field_name} must be positive")
    return parsed


def parse_accounts(value: str | None) -> list[str]:
    """Parse comma-separated account addresses, keeping order and dropping repeats."""
    if not value:
        return []
    accounts: list[str] = []
    seen: set[str] = set()
    for item in value.split(","):
        account = item.strip()
        if not account or account in seen:
            continue
        seen.add(account)
        accounts.append(account)
    return accounts


@dataclass(frozen=True)
class Settings:
    """Immutable runtime settings."""

    swap_url: str = DEFAULT_SWAP_URL
    equity_asset: str = DEFAULT_EQUITY_ASSET
    accounts: list[str] = field(default_factory=list)
    state_db_path: str = "state/swapdesk_state.db"
    log_level: str = "INFO"
    request_timeout_seconds: int = 20
    max_retries: int = 4
    reconnect_delay_seconds: float = 5.0
    trading_subroute: str = "/swap"
    alert_min_ms: int = 4000
    alert_max_ms: int = 12000
    search_debounce_ms: int = 300
    series_interval_seconds: int = 1800
    reports_dir: str = "reports"

    @classmethod
    def from_env(cls) -> Self:
        """Create settings from environment variables."""
        load_dotenv()
        raw = cls(
            swap_url=str(os.getenv("SWAP_URL", DEFAULT_SWAP_URL)).strip(),
            equity_asset=str(os.getenv("EQUITY_ASSET", DEFAULT_EQUITY_ASSET)).strip().upper(),
            accounts=parse_accounts(os.getenv("ACCOUNTS")),
            state_db_path=str(os.getenv("STATE_DB_PATH", "state/swapdesk_state.db")).strip(),
            log_level=str(os.getenv("LOG_LEVEL", "INFO")).strip().upper(),
            request_timeout_seconds=parse_optional_positive_int(
                os.getenv("REQUEST_TIMEOUT_SECONDS"),
                field_name="request_timeout_seconds",
            )
            or 20,
            max_retries=parse_optional_positive_int(
                os.getenv("MAX_RETRIES"),
                field_name="max_retries",
            )
            or 4,
            reconnect_delay_seconds=float(os.getenv("RECONNECT_DELAY_SECONDS", "5")),
            trading_subroute=str(os.getenv("TRADING_SUBROUTE", "/swap")).strip(),
            alert_min_ms=int(os.getenv("ALERT_MIN_MS", "4000")),
            alert_max_ms=int(os.getenv("ALERT_MAX_MS", "12000")),
            search_debounce_ms=int(os.getenv("SEARCH_DEBOUNCE_MS", "300")),
            series_interval_seconds=int(os.getenv("SERIES_INTERVAL_SECONDS", "1800")),
            reports_dir=str(os.getenv("REPORTS_DIR", "reports")).strip(),
        )
        return raw.validate()

    def with_overrides(self, **kwargs: object) -> Self:
        """Return a new settings object with updated values."""
        overrides = dict(kwargs)
        accounts_override = overrides.get("accounts")
        if isinstance(accounts_override, str):
            overrides["accounts"] = parse_accounts(accounts_override)
        updated = replace(self, **overrides)
        return updated.validate()

    def validate(self) -> Self:
        """Validate settings fields."""
        if not self.swap_url.startswith(("http://", "https://")):
            raise ValueError("swap_url must start with http:// or https://")
        if not self.equity_asset:
            raise ValueError("equity_asset must not be empty")
        if self.request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be positive")
        if self.max_retries <= 0:
            raise ValueError("max_retries must be positive")
        if self.reconnect_delay_seconds < 0:
            raise ValueError("reconnect_delay_seconds must not be negative")
        if not self.trading_subroute.startswith("/"):
            raise ValueError("trading_subroute must start with /")
        if self.alert_min_ms <= 0 or self.alert_max_ms < self.alert_min_ms:
            raise ValueError("alert durations must satisfy 0 < alert_min_ms <= alert_max_ms")
        if self.search_debounce_ms < 0:
            raise ValueError("search_debounce_ms must not be negative")
        supported = {seconds for seconds, _ in INTERVALS}
        if self.series_interval_seconds not in supported:
            choices = ", ".join(str(seconds) for seconds, _ in INTERVALS)
            raise ValueError(f"series_interval_seconds must be one of {choices}")
        if self.log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("log_level must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return self
