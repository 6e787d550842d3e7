"""
Test configuration management
"""
from ticket_intake.config import Settings, get_settings
from ticket_intake.tests.conftest import make_settings


def test_settings_singleton():
    """Test settings returns same instance"""
    settings1 = get_settings()
    settings2 = get_settings()
    assert settings1 is settings2


def test_settings_defaults():
    """Test default values"""
    settings = Settings(_env_file=None)
    assert settings.app_port == 3000
    assert settings.ticket_id_prefix == "TKT"
    assert settings.conversation_idle_seconds == 3600
    assert settings.reply_delay_seconds == 1.5


def test_integration_flags():
    settings = make_settings(telegram_chat_id="", greenapi_api_token="")

    assert settings.telegram_configured is False
    assert settings.whatsapp_configured is False
    assert settings.x_configured is False
    assert make_settings(x_bearer_token="t", x_user_id="1").x_configured is True


def test_cors_origin_list():
    settings = make_settings(cors_origins="https://a.example, https://b.example,")

    assert settings.cors_origin_list == ["https://a.example", "https://b.example"]


def test_environment_override(monkeypatch):
    monkeypatch.setenv("TICKET_STORE", "file")
    monkeypatch.setenv("CHATBOT_ENABLED", "false")

    settings = Settings(_env_file=None)

    assert settings.ticket_store == "file"
    assert settings.chatbot_enabled is False
