"""
Ticket Intake Service - Configuration Management
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings"""

    # Server
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 3000
    cors_origins: str = "*"  # Comma-separated origins

    # Authentication
    service_api_key: str = ""  # X-API-Key for ticket submission
    admin_api_key: str = ""  # X-Admin-API-Key for admin endpoints

    # Ticket store
    ticket_store: str = "memory"  # memory | file | supabase
    ticket_store_path: str = "data/tickets.json"
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_table: str = "tickets"
    supabase_counter_function: str = "next_ticket_sequence"

    # Ticket identifiers
    ticket_id_strategy: str = "random"  # random | sequential
    ticket_id_prefix: str = "TKT"

    # Also require category and subject on submission
    require_full_ticket: bool = False

    # LLM
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    ai_summary_enabled: bool = True

    # Notifications
    notification_channel: str = "telegram"  # telegram | whatsapp | none
    notification_template: str = "full"  # full | compact
    notification_timezone: str = "Asia/Riyadh"

    # Telegram
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""
    telegram_api_url: str = "https://api.telegram.org"

    # WhatsApp (Green-API gateway)
    greenapi_instance_id: str = ""
    greenapi_api_token: str = ""
    greenapi_group_id: str = ""
    greenapi_api_url: str = "https://api.green-api.com"
    greenapi_webhook_secret: str = ""

    # Chatbot
    chatbot_enabled: bool = True
    conversation_idle_seconds: int = 3600
    conversation_sweep_seconds: int = 300
    reply_delay_seconds: float = 1.5
    webhook_dedup_size: int = 500

    # X (Twitter) direct messages
    x_bearer_token: str = ""
    x_user_id: str = ""
    x_api_url: str = "https://api.twitter.com"
    x_poll_interval_seconds: float = 60.0
    x_poll_enabled: bool = False

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False
    )

    @property
    def telegram_configured(self) -> bool:
        """Telegram bot token and target chat are both set"""
        return bool(self.telegram_bot_token and self.telegram_chat_id)

    @property
    def whatsapp_configured(self) -> bool:
        """Green-API instance credentials are set"""
        return bool(self.greenapi_instance_id and self.greenapi_api_token)

    @property
    def x_configured(self) -> bool:
        """X API bearer token and bot account id are set"""
        return bool(self.x_bearer_token and self.x_user_id)

    @property
    def cors_origin_list(self) -> list[str]:
        """Parsed CORS origins"""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
