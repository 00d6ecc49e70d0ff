from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "Cinema Showtime Scheduling API"
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str = "changeme"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 8

    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "12345"
    POSTGRES_DB: str = "cinema_db"
    POSTGRES_PORT: int = 5432
    DATABASE_URL: str = ""

    # Scheduling rules (minutes). The gap and the expiration grace are independent.
    CLEANUP_BUFFER_MINUTES: int = 15
    INTER_SCREENING_GAP_MINUTES: int = 15
    EXPIRATION_GRACE_MINUTES: int = 30
    OPERATING_HOURS_START: str = "09:00:00"
    OPERATING_HOURS_END: str = "23:00:00"
    VENUE_CLOSING_TIME: str = "23:59:59"
    MAX_SUGGESTED_SLOTS: int = 5

    # Expiration sweeper
    SHOWTIME_SWEEP_INTERVAL_SECONDS: int = 60
    SHOWTIME_SWEEPER_ENABLED: bool = True

    TIME_FORMAT_CACHE_SIZE: int = 1000

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    def assemble_db_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

settings = Settings()
settings.DATABASE_URL = settings.assemble_db_url()
