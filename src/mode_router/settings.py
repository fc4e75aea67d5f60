from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    host: str = "127.0.0.1"
    port: int = 8090
    log_level: str = "INFO"

    ollama_base_url: str = "http://127.0.0.1:11434"
    ollama_model: str = "llama3.1:8b"

    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"
    openai_api_key: str | None = None

    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_model: str = "openai/gpt-4o-mini"
    openrouter_api_key: str | None = None

    provider_timeout_seconds: float = 120.0

    requests_per_second: float = 3.0
    requests_per_minute: int = 100

    retry_max_retries: int = 3
    retry_base_delay: float = 1.0
    retry_exponential_backoff: bool = True

    max_swap_bytes: int = 2 * 1024**3
    max_mem_percent: float = 92.0

    settings_store_path: str = "./mode_router_settings.json"
    audit_log_path: str = "./audit.log"


settings = Settings()
