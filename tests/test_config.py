"""Tests for environment-driven configuration."""

import json
import os

import pytest

from harvester.errors import ConfigurationError
from harvester.utils.config import DEFAULT_PORTAL_URL, Config


CONFIG_VARS = [
    "PORTAL_URL", "TOKEN_ENDPOINT_FRAGMENT", "PORTAL_EMAIL", "PORTAL_PASSWORD",
    "SHEET_ID", "SHEET_RANGE", "GOOGLE_SERVICE_ACCOUNT", "GOOGLE_SERVICE_ACCOUNT_FILE",
    "SESSION_FILE", "RETRY_MAX_ATTEMPTS", "RETRY_BASE_DELAY_MS", "NAVIGATION_TIMEOUT_MS",
    "TOKEN_WAIT_MS", "TOKEN_POLL_INTERVAL_MS", "PAGE_SETTLE_MS", "SETUP_WAIT_SECONDS",
    "SETUP_MODE", "HEADLESS_MODE", "USER_AGENT", "LOG_LEVEL", "LOG_DIR",
]

SERVICE_ACCOUNT = {"type": "service_account", "client_email": "bot@project.iam.gserviceaccount.com"}


@pytest.fixture
def config(monkeypatch, tmp_path):
    for name in CONFIG_VARS:
        monkeypatch.delenv(name, raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("")
    return Config(str(env_file))


@pytest.fixture
def publishing_env(monkeypatch):
    monkeypatch.setenv("SHEET_ID", "sheet-123")
    monkeypatch.setenv("GOOGLE_SERVICE_ACCOUNT", json.dumps(SERVICE_ACCOUNT))


class TestDefaults:
    def test_defaults(self, config):
        assert config.portal_url == DEFAULT_PORTAL_URL
        assert config.token_endpoint_fragment == "/v5/token"
        assert config.sheet_range == "Sheet1!A1:B1"
        assert config.token_wait_ms == 15000
        assert config.token_poll_interval_ms == 500
        assert config.headless_mode is True
        assert config.setup_mode is False
        assert config.credential_mode is False

    def test_retry_policy_from_env(self, config, monkeypatch):
        monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("RETRY_BASE_DELAY_MS", "250")

        policy = config.retry_policy

        assert policy.max_attempts == 5
        assert policy.base_delay_seconds == 0.25

    def test_values_from_env_file(self, monkeypatch, tmp_path):
        for name in CONFIG_VARS:
            monkeypatch.delenv(name, raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("SHEET_ID=from-file\nSETUP_MODE=yes\n")

        try:
            config = Config(str(env_file))
            assert config.sheet_id == "from-file"
            assert config.setup_mode is True
        finally:
            # load_dotenv writes straight into os.environ
            os.environ.pop("SHEET_ID", None)
            os.environ.pop("SETUP_MODE", None)


class TestServiceAccount:
    def test_inline_json(self, config, publishing_env):
        assert config.google_service_account == SERVICE_ACCOUNT

    def test_file_fallback(self, config, monkeypatch, tmp_path):
        path = tmp_path / "sa.json"
        path.write_text(json.dumps(SERVICE_ACCOUNT))
        monkeypatch.setenv("GOOGLE_SERVICE_ACCOUNT_FILE", str(path))

        assert config.google_service_account == SERVICE_ACCOUNT

    def test_invalid_json(self, config, monkeypatch):
        monkeypatch.setenv("GOOGLE_SERVICE_ACCOUNT", "{not json")
        with pytest.raises(ConfigurationError, match="not valid JSON"):
            config.google_service_account

    def test_missing(self, config):
        with pytest.raises(ConfigurationError, match="GOOGLE_SERVICE_ACCOUNT"):
            config.google_service_account


class TestValidate:
    """Tests for Config.validate."""

    def test_unattended_requires_sheet(self, config):
        with pytest.raises(ConfigurationError, match="SHEET_ID"):
            config.validate(setup_mode=False)

    def test_unattended_with_publishing_config(self, config, publishing_env):
        assert config.validate(setup_mode=False) is True

    def test_setup_mode_does_not_need_publishing(self, config):
        assert config.validate(setup_mode=True) is True

    def test_half_set_credentials_rejected(self, config, publishing_env, monkeypatch):
        monkeypatch.setenv("PORTAL_EMAIL", "ops@vendor.test")
        with pytest.raises(ConfigurationError, match="set together"):
            config.validate(setup_mode=False)

    def test_credential_mode(self, config, publishing_env, monkeypatch):
        monkeypatch.setenv("PORTAL_EMAIL", "ops@vendor.test")
        monkeypatch.setenv("PORTAL_PASSWORD", "s3cret")
        assert config.validate(setup_mode=False) is True
        assert config.credential_mode is True

    @pytest.mark.parametrize("name,value", [
        ("RETRY_MAX_ATTEMPTS", "0"),
        ("TOKEN_POLL_INTERVAL_MS", "0"),
        ("NAVIGATION_TIMEOUT_MS", "-5"),
        ("TOKEN_WAIT_MS", "soon"),
    ])
    def test_bad_numbers_rejected(self, config, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ConfigurationError):
            config.validate(setup_mode=True)

    def test_zero_base_delay_allowed(self, config, monkeypatch):
        monkeypatch.setenv("RETRY_BASE_DELAY_MS", "0")
        assert config.validate(setup_mode=True) is True
