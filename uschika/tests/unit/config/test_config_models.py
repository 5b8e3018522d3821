"""
Tests for the pydantic-settings configuration models.
"""

import pytest
from pydantic import ValidationError

from uschika.config import get_config
from uschika.config.models import (
    AppConfig,
    ChatConfig,
    CORSConfig,
    DatabaseConfig,
    SecurityConfig,
    ServerConfig,
)


class TestConfigModels:
    def test_defaults(self):
        config = AppConfig()
        assert config.server.port == 5000
        assert config.chat.max_message_length == 1000
        assert config.chat.message_retention_hours == 24
        assert config.chat.max_queued_events == 1000
        assert config.security.allowed_email_domain == "@usc.edu.ph"
        assert config.database.url is None

    def test_get_config_returns_fresh_instances_under_pytest(self):
        assert get_config() is not get_config()

    def test_jwt_secret_required(self, monkeypatch):
        monkeypatch.delenv("USCHIKA_JWT_SECRET", raising=False)
        with pytest.raises(ValidationError):
            SecurityConfig()

    def test_jwt_secret_minimum_length(self, monkeypatch):
        monkeypatch.setenv("USCHIKA_JWT_SECRET", "short")
        with pytest.raises(ValidationError):
            SecurityConfig()

    def test_blank_domain_disables_restriction(self, monkeypatch):
        monkeypatch.setenv("USCHIKA_ALLOWED_EMAIL_DOMAIN", "  ")
        assert SecurityConfig().allowed_email_domain is None

    def test_port_range(self, monkeypatch):
        monkeypatch.setenv("SERVER_PORT", "80")
        with pytest.raises(ValidationError):
            ServerConfig()

    def test_database_url_must_be_postgres(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "mysql://db/chat")
        with pytest.raises(ValidationError):
            DatabaseConfig()

    def test_database_url_accepted(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@localhost/chat")
        assert DatabaseConfig().url == "postgresql://u:p@localhost/chat"

    def test_chat_limits_from_env(self, monkeypatch):
        monkeypatch.setenv("CHAT_RATE_LIMIT_MESSAGES", "5")
        monkeypatch.setenv("CHAT_MAX_MESSAGE_LENGTH", "200")
        chat = ChatConfig()
        assert chat.rate_limit_messages == 5
        assert chat.max_message_length == 200

    def test_chat_limits_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("CHAT_RATE_LIMIT_WINDOW", "0")
        with pytest.raises(ValidationError):
            ChatConfig()

    @pytest.mark.parametrize(
        "raw",
        ["https://a.example,https://b.example", '["https://a.example", "https://b.example"]'],
    )
    def test_cors_origins_csv_or_json(self, monkeypatch, raw):
        monkeypatch.setenv("CORS_ALLOW_ORIGINS", raw)
        assert CORSConfig().allow_origins == ["https://a.example", "https://b.example"]

    def test_legacy_dict(self):
        legacy = AppConfig().to_legacy_dict()
        assert legacy["port"] == 5000
        assert legacy["database_enabled"] is False
        assert legacy["logging"]["environment"] == "unit_test"
