"""Unit tests for engine settings."""

import pytest
from pydantic import ValidationError

from lam_engine.config import EngineSettings


class TestEngineSettings:
    """Test EngineSettings class."""

    def test_defaults(self):
        """Test default settings values."""
        settings = EngineSettings()

        assert settings.log_level == "INFO"
        assert settings.log_format == "json"
        assert settings.undo_window_seconds == 300
        assert settings.action_execution_timeout == 30
        assert settings.ambiguous_match_policy == "most_recent"
        assert settings.rate_limit_runs == 30
        assert settings.api_port == 8080
        assert settings.metrics_port == 9090
        assert settings.twilio_base_url == "https://api.twilio.com"
        assert settings.resend_base_url == "https://api.resend.com"

    def test_environment_override(self, monkeypatch):
        """Test settings are read from LAM_ prefixed variables."""
        monkeypatch.setenv("LAM_UNDO_WINDOW_SECONDS", "120")
        monkeypatch.setenv("LAM_AMBIGUOUS_MATCH_POLICY", "reject")
        monkeypatch.setenv("lam_twilio_account_sid", "AC123")

        settings = EngineSettings()

        assert settings.undo_window_seconds == 120
        assert settings.ambiguous_match_policy == "reject"
        assert settings.twilio_account_sid == "AC123"

    def test_undo_window_bounds(self):
        """Test undo window validation."""
        EngineSettings(undo_window_seconds=5)
        EngineSettings(undo_window_seconds=900)

        with pytest.raises(ValidationError):
            EngineSettings(undo_window_seconds=4)

        with pytest.raises(ValidationError):
            EngineSettings(undo_window_seconds=901)

    def test_timeout_bounds(self):
        """Test action timeout validation."""
        with pytest.raises(ValidationError):
            EngineSettings(action_execution_timeout=0)

        with pytest.raises(ValidationError):
            EngineSettings(action_execution_timeout=601)

    def test_invalid_policy(self):
        """Test unknown ambiguity policy is rejected."""
        with pytest.raises(ValidationError):
            EngineSettings(ambiguous_match_policy="first")

    def test_validate_assignment(self):
        """Test assignments are validated."""
        settings = EngineSettings()

        with pytest.raises(ValidationError):
            settings.log_format = "xml"
