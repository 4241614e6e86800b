from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite+aiosqlite:///./academy.db"

    secret_key: str = "change-this-secret-key-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 720

    # Receipt issuance re-sequences on primary key collisions
    receipt_retry_attempts: int = 5

    # Marks are accepted in [-max_score, max_score] unless disabled
    allow_negative_marks: bool = True

    backup_on_shutdown: bool = False
    backup_dir: str = "./backupDB"

    log_level: str = "INFO"


settings = Settings()
