from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    api_base_url: str = "http://localhost:5000/api"

    max_file_size: int = 10 * 1024 * 1024
    request_timeout_seconds: float = 60.0

    session_duration_minutes: int = 30

    # pause between the "complete" step and showing the result
    complete_step_delay_seconds: float = 0.8

    log_level: str = "INFO"
    log_dir: str | None = None

    model_config = SettingsConfigDict(env_prefix="CV_SLAYER_", env_file=".env", extra="ignore")

settings = Settings()
