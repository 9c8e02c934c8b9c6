from __future__ import annotations

import pytest

from swapdesk.config import Settings, parse_accounts, parse_bool, parse_optional_positive_int

ENV_KEYS = [
    "SWAP_URL",
    "EQUITY_ASSET",
    "ACCOUNTS",
    "STATE_DB_PATH",
    "LOG_LEVEL",
    "REQUEST_TIMEOUT_SECONDS",
    "MAX_RETRIES",
    "RECONNECT_DELAY_SECONDS",
    "TRADING_SUBROUTE",
    "ALERT_MIN_MS",
    "ALERT_MAX_MS",
    "SEARCH_DEBOUNCE_MS",
    "SERIES_INTERVAL_SECONDS",
    "REPORTS_DIR",
]


def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("swapdesk.config.load_dotenv", lambda *args, **kwargs: None)
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults_without_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    _clear_env(monkeypatch)

    settings = Settings.from_env()

    assert settings.swap_url == "http://localhost:8420"
    assert settings.equity_asset == "USD"
    assert settings.accounts == []
    assert settings.series_interval_seconds == 1800
    assert settings.alert_min_ms == 4000
    assert settings.alert_max_ms == 12000


def test_environment_values_are_normalized(monkeypatch: pytest.MonkeyPatch) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("SWAP_URL", "https://swap.example/api")
    monkeypatch.setenv("EQUITY_ASSET", " usdc ")
    monkeypatch.setenv("ACCOUNTS", "acc-1, acc-2,acc-1,,")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("MAX_RETRIES", "2")
    monkeypatch.setenv("SERIES_INTERVAL_SECONDS", "300")

    settings = Settings.from_env()

    assert settings.swap_url == "https://swap.example/api"
    assert settings.equity_asset == "USDC"
    assert settings.accounts == ["acc-1", "acc-2"]
    assert settings.log_level == "DEBUG"
    assert settings.max_retries == 2
    assert settings.series_interval_seconds == 300


@pytest.mark.parametrize(
    ("key", "value", "message"),
    [
        ("SWAP_URL", "ftp://swap", "swap_url"),
        ("SERIES_INTERVAL_SECONDS", "61", "series_interval_seconds"),
        ("LOG_LEVEL", "loud", "log_level"),
        ("TRADING_SUBROUTE", "swap", "trading_subroute"),
        ("ALERT_MAX_MS", "100", "alert durations"),
        ("MAX_RETRIES", "0", "max_retries must be positive"),
    ],
)
def test_invalid_environment_is_rejected(
    monkeypatch: pytest.MonkeyPatch, key: str, value: str, message: str
) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv(key, value)

    with pytest.raises(ValueError, match=message):
        Settings.from_env()


def test_with_overrides_parses_account_text() -> None:
    settings = Settings().with_overrides(accounts="a,b,a", reports_dir="out")

    assert settings.accounts == ["a", "b"]
    assert settings.reports_dir == "out"


def test_parse_helpers() -> None:
    assert parse_bool(None, True) is True
    assert parse_bool(" yes ", False) is True
    assert parse_bool("0", True) is False
    assert parse_optional_positive_int("  ", field_name="x") is None
    assert parse_optional_positive_int("5", field_name="x") == 5
    assert parse_accounts(None) == []
    with pytest.raises(ValueError, match="x must be positive"):
        parse_optional_positive_int("-1", field_name="x")
