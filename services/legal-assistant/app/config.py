from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, env_prefix="", case_sensitive=False)

    app_name: str = "legal-assistant"
    api_prefix: str = "/api"
    log_level: str = "INFO"

    default_tenant_id: str = "default"
    database_url: str = "sqlite:///./data/legal_assistant.db"

    auth_disabled: bool = True
    jwt_secret: str | None = None
    jwt_algorithm: str = "HS256"

    # n8n conversational workflow; N8N_WEBHOOK_URL overrides the placeholder
    n8n_webhook_url: str = "https://your-n8n-instance.com/webhook/chat"
    assistant_timeout_seconds: float = 30.0

    # everything from this word onward in a reply is internal
    directive_marker: str = "ACCION"

    # zone for user dates written without an offset
    default_timezone: str = "UTC"


settings = Settings()
