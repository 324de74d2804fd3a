"""Tests for the settings model and its cache."""

from decimal import Decimal
from pathlib import Path

import pytest
from pydantic import ValidationError

from cafsample.config import (
    CafSampleSettings,
    FundsConfig,
    TokenConfig,
    get_settings,
    reload_settings,
)


class TestDefaults:
    """Built-in defaults match the documented sample values."""

    def test_server_defaults(self) -> None:
        settings = CafSampleSettings()
        assert settings.server.host == "0.0.0.0"  # noqa: S104
        assert settings.server.port == 3000

    def test_token_defaults(self) -> None:
        settings = CafSampleSettings()
        assert settings.token.environment == "sandbox"
        assert settings.token.backend == "local"
        assert settings.token.keys_dir == Path("keys")
        assert settings.uses_local_backend

    def test_funds_defaults(self) -> None:
        funds = CafSampleSettings().funds
        assert funds.bank_id == "ob-modelo"
        assert funds.account_number == "70000004"
        assert funds.bank_code == "700001"
        assert funds.country == "GB"
        assert funds.amount == Decimal("1.0")
        assert funds.currency == "GBP"

    def test_member_defaults(self) -> None:
        member = CafSampleSettings().member
        assert member.display_name == "CBPII Demo"
        assert member.profile_picture is None


class TestEnvironmentOverrides:
    """CAFSAMPLE_* variables override defaults, nested with '__'."""

    def test_nested_port_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CAFSAMPLE_SERVER__PORT", "8081")
        assert CafSampleSettings().server.port == 8081

    def test_keys_dir_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CAFSAMPLE_TOKEN__KEYS_DIR", "/tmp/other-keys")
        assert CafSampleSettings().token.keys_dir == Path("/tmp/other-keys")

    def test_dotenv_file_is_read(self, isolated_workdir: Path) -> None:
        (isolated_workdir / ".env").write_text("CAFSAMPLE_FUNDS__CURRENCY=EUR\n")
        assert CafSampleSettings().funds.currency == "EUR"


class TestValidation:
    """Invalid values are rejected at load time."""

    @pytest.mark.parametrize("backend", ["vendor", "vendor:", ":factory"])
    def test_backend_must_be_import_path(self, backend: str) -> None:
        with pytest.raises(ValidationError, match="Invalid backend"):
            TokenConfig(backend=backend)

    def test_backend_import_path_accepted(self) -> None:
        assert TokenConfig(backend="vendor.sdk:build").backend == "vendor.sdk:build"

    def test_authorize_path_needs_placeholder(self) -> None:
        with pytest.raises(ValidationError, match="request_id"):
            TokenConfig(authorize_path="/consent")

    @pytest.mark.parametrize("currency", ["gbp", "GB", "POUND"])
    def test_currency_code(self, currency: str) -> None:
        with pytest.raises(ValidationError):
            FundsConfig(currency=currency)

    def test_amount_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            FundsConfig(amount=Decimal("0"))

    def test_port_range(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CAFSAMPLE_SERVER__PORT", "70000")
        with pytest.raises(ValidationError):
            CafSampleSettings()


class TestSettingsCache:
    """get_settings caches, reload_settings re-reads the environment."""

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()

    def test_reload_picks_up_changes(self, monkeypatch: pytest.MonkeyPatch) -> None:
        assert get_settings().server.port == 3000
        monkeypatch.setenv("CAFSAMPLE_SERVER__PORT", "4000")
        assert get_settings().server.port == 3000
        assert reload_settings().server.port == 4000

    def test_local_backend_rejects_production(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CAFSAMPLE_TOKEN__ENVIRONMENT", "production")
        with pytest.raises(ValueError, match="Configuration error"):
            get_settings()

    def test_invalid_settings_wrapped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CAFSAMPLE_TOKEN__BACKEND", "not-a-path")
        with pytest.raises(ValueError, match="Configuration error"):
            get_settings()
