# core/config.py
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    MONGO_DETAILS: str
    DATABASE_NAME: str = "darkframe_db"
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 48  # 48 hours

    # Redis configuration for rate limiting
    REDIS_URL: str = "redis://localhost:6379/0"

    LOG_LEVEL: str = "INFO"

    # Background jobs
    JOBS_ENABLED: bool = True
    FACTORY_SLOT_REGEN_INTERVAL_SECONDS: int = 60
    FLAG_BOT_INTERVAL_SECONDS: int = 30 * 60  # 30 minutes
    FLAG_ABANDON_THRESHOLD_SECONDS: int = 60 * 60  # 1 hour unclaimed

    # Harvest tuning
    CROWD_BONUS_PER_ACTOR: float = 0.05  # 5% per concurrent harvester
    CROWD_CAP: int = 20

    class Config:
        env_file = ".env"

settings = Settings()
