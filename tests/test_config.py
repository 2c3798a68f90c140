from __future__ import annotations

import pytest

from retail_ops_sdk.config import ConfigError, load_config

_ENV_KEYS = (
    "RETAIL_OPS_ENV",
    "RETAIL_OPS_API_BASE_URL",
    "RETAIL_OPS_API_BASE_URL_DEV",
    "RETAIL_OPS_API_BASE_URL_STAGING",
    "RETAIL_OPS_TIMEOUT_SECONDS",
    "RETAIL_OPS_CONNECT_TIMEOUT_SECONDS",
    "RETAIL_OPS_READ_TIMEOUT_SECONDS",
    "RETAIL_OPS_RETRIES",
    "RETAIL_OPS_RETRY_BACKOFF_SECONDS",
    "RETAIL_OPS_MAX_CONNECTIONS",
    "RETAIL_OPS_VERIFY_SSL",
    "RETAIL_OPS_MIN_PAYMENT_PERCENTAGE",
    "RETAIL_OPS_ALLOW_OVERPAYMENT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_load_config_requires_base_url() -> None:
    with pytest.raises(ConfigError, match="RETAIL_OPS_API_BASE_URL"):
        load_config()


def test_load_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RETAIL_OPS_API_BASE_URL", "https://api.example.com/")
    cfg = load_config()

    assert cfg.env_name == "dev"
    assert cfg.api_base_url == "https://api.example.com"
    assert cfg.connect_timeout_seconds == 5.0
    assert cfg.read_timeout_seconds == 10.0
    assert cfg.retries == 3
    assert cfg.verify_ssl is True
    assert cfg.minimum_payment_percentage == 70
    assert cfg.allow_overpayment is True


def test_load_config_profile(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RETAIL_OPS_ENV", "staging")
    monkeypatch.setenv("RETAIL_OPS_API_BASE_URL_STAGING", "https://staging.example.com")
    cfg = load_config()

    assert cfg.api_base_url == "https://staging.example.com"
    assert cfg.normalized_env == "staging"


def test_load_config_business_policy(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RETAIL_OPS_API_BASE_URL", "https://api.example.com")
    monkeypatch.setenv("RETAIL_OPS_MIN_PAYMENT_PERCENTAGE", "50")
    monkeypatch.setenv("RETAIL_OPS_ALLOW_OVERPAYMENT", "false")
    cfg = load_config()

    assert cfg.minimum_payment_percentage == 50
    assert cfg.allow_overpayment is False


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("RETAIL_OPS_TIMEOUT_SECONDS", "0"),
        ("RETAIL_OPS_CONNECT_TIMEOUT_SECONDS", "0"),
        ("RETAIL_OPS_READ_TIMEOUT_SECONDS", "-1"),
        ("RETAIL_OPS_RETRIES", "-1"),
        ("RETAIL_OPS_RETRY_BACKOFF_SECONDS", "-0.1"),
        ("RETAIL_OPS_MAX_CONNECTIONS", "0"),
        ("RETAIL_OPS_MIN_PAYMENT_PERCENTAGE", "101"),
        ("RETAIL_OPS_MIN_PAYMENT_PERCENTAGE", "-1"),
        ("RETAIL_OPS_RETRIES", "three"),
        ("RETAIL_OPS_TIMEOUT_SECONDS", "soon"),
    ],
)
def test_load_config_rejects_invalid_values(monkeypatch: pytest.MonkeyPatch, key: str, value: str) -> None:
    monkeypatch.setenv("RETAIL_OPS_API_BASE_URL", "https://api.example.com")
    monkeypatch.setenv(key, value)

    with pytest.raises(ConfigError, match=key):
        load_config()


def test_load_config_from_env_file(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("RETAIL_OPS_API_BASE_URL=https://file.example.com\nRETAIL_OPS_RETRIES=1\n")
    for key in ("RETAIL_OPS_API_BASE_URL", "RETAIL_OPS_RETRIES"):
        # Registered with monkeypatch so values loaded from the file are undone.
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    cfg = load_config(str(env_file))

    assert cfg.api_base_url == "https://file.example.com"
    assert cfg.retries == 1


def test_timeouts_follow_overall_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RETAIL_OPS_API_BASE_URL", "https://api.example.com")
    monkeypatch.setenv("RETAIL_OPS_TIMEOUT_SECONDS", "20")
    cfg = load_config()

    assert cfg.connect_timeout_seconds == 5.0
    assert cfg.read_timeout_seconds == 20.0


def test_blank_values_fall_back_to_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RETAIL_OPS_API_BASE_URL", "https://api.example.com")
    monkeypatch.setenv("RETAIL_OPS_RETRIES", "  ")
    monkeypatch.setenv("RETAIL_OPS_VERIFY_SSL", "")
    cfg = load_config()

    assert cfg.retries == 3
    assert cfg.verify_ssl is True
