"""Tests for the configuration system."""

from decimal import Decimal

import pytest
import structlog

from gigledger_tax.config import (
    ExportSettings,
    GigLedgerConfig,
    configure_logging,
    load_config,
)
from gigledger_tax.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch):
    """Keep host environment variables out of these tests."""
    for name in (
        "GIGLEDGER_ENV",
        "GIGLEDGER_LOG_LEVEL",
        "GIGLEDGER_EXPORT_INCLUDE_TIPS",
        "GIGLEDGER_EXPORT_INCLUDE_FEES_AS_DEDUCTION",
        "GIGLEDGER_EXPORT_TIMEZONE",
        "GIGLEDGER_EXPORT_APP_VERSION",
        "GIGLEDGER_EXPORT_TXF_FLAVOR",
        "GIGLEDGER_EXPORT_ASSET_REVIEW_THRESHOLD",
    ):
        monkeypatch.delenv(name, raising=False)


class TestExportSettings:
    """Test suite for ExportSettings."""

    def test_default_values(self):
        """ExportSettings should have sensible defaults."""
        settings = ExportSettings()

        assert settings.include_tips is True
        assert settings.include_fees_as_deduction is True
        assert settings.timezone == "America/New_York"
        assert settings.app_version == "1.0.0"
        assert settings.txf_flavor == "turbotax"
        assert settings.asset_review_threshold == Decimal("2500")

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch):
        """Settings should be read from GIGLEDGER_EXPORT_ variables."""
        monkeypatch.setenv("GIGLEDGER_EXPORT_INCLUDE_TIPS", "false")
        monkeypatch.setenv("GIGLEDGER_EXPORT_TXF_FLAVOR", "hrblock")
        monkeypatch.setenv("GIGLEDGER_EXPORT_ASSET_REVIEW_THRESHOLD", "1000")

        settings = ExportSettings()

        assert settings.include_tips is False
        assert settings.txf_flavor == "hrblock"
        assert settings.asset_review_threshold == Decimal("1000")

    def test_blank_text_rejected(self):
        """Timezone and app version cannot be empty."""
        with pytest.raises(ValueError):
            ExportSettings(timezone="  ")

        with pytest.raises(ValueError):
            ExportSettings(app_version="")

    def test_text_is_trimmed(self):
        assert ExportSettings(timezone=" America/Denver ").timezone == "America/Denver"

    def test_unknown_flavor_rejected(self):
        with pytest.raises(ValueError):
            ExportSettings(txf_flavor="taxact")

    def test_threshold_must_be_positive(self):
        with pytest.raises(ValueError):
            ExportSettings(asset_review_threshold=0)


class TestGigLedgerConfig:
    """Test suite for GigLedgerConfig."""

    def test_default_values(self):
        config = GigLedgerConfig()

        assert config.env == "development"
        assert config.log_level == "INFO"
        assert isinstance(config.export, ExportSettings)
        assert config.is_production is False
        assert config.is_debug is False

    def test_env_validation(self):
        """Environment names are normalized and checked."""
        assert GigLedgerConfig(env=" Production ").env == "production"
        assert GigLedgerConfig(env="production").is_production is True

        with pytest.raises(ValueError):
            GigLedgerConfig(env="qa")

    def test_log_level_validation(self):
        """Log levels are uppercased and checked."""
        config = GigLedgerConfig(log_level="debug")
        assert config.log_level == "DEBUG"
        assert config.is_debug is True

        with pytest.raises(ValueError):
            GigLedgerConfig(log_level="verbose")

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("GIGLEDGER_ENV", "staging")
        monkeypatch.setenv("GIGLEDGER_LOG_LEVEL", "warning")
        monkeypatch.setenv("GIGLEDGER_EXPORT_INCLUDE_FEES_AS_DEDUCTION", "0")

        config = GigLedgerConfig()

        assert config.env == "staging"
        assert config.log_level == "WARNING"
        assert config.export.include_fees_as_deduction is False


class TestLoadConfig:
    """Test suite for load_config."""

    def test_returns_config(self):
        config = load_config(env="test")

        assert config.env == "test"

    def test_invalid_value_raises_configuration_error(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(env="qa")

        error = exc_info.value
        assert error.config_key == "env"
        assert error.actual == "qa"
        assert error.recoverable is False


class TestConfigureLogging:
    """Test suite for configure_logging."""

    @pytest.fixture(autouse=True)
    def reset_structlog(self):
        yield
        structlog.reset_defaults()

    def test_filters_below_configured_level(self, capsys: pytest.CaptureFixture):
        configure_logging(GigLedgerConfig(log_level="WARNING"))
        logger = structlog.get_logger()

        logger.info("hidden_event")
        logger.warning("shown_event")

        out = capsys.readouterr().out
        assert "hidden_event" not in out
        assert "shown_event" in out
