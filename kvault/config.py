from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="KVAULT_", env_file=".env", extra="ignore")

    # Storage settings
    store_path: str = "data/graph.json"
    identity_path: str = "data/users.json"

    # Token settings
    token_secret: str = "your-super-secret-token-key-change-in-production"
    token_max_age_seconds: int = 7 * 24 * 60 * 60

    # Graph settings
    enforce_relationship_ownership: bool = True
    search_debounce_seconds: float = 0.3
    default_canvas_width: float = 800.0
    default_canvas_height: float = 600.0
    min_canvas_size: float = 400.0
    layout_seed: int | None = None

    # Web server settings
    cors_origins: list[str] = ["*"]

    log_level: str = "INFO"  # Can be DEBUG, INFO, WARNING, ERROR, CRITICAL


settings = Settings()
