from pydantic import BaseModel, Field, field_validator
from dotenv import load_dotenv
import os

load_dotenv()

class Settings(BaseModel):
    store_backend: str = os.getenv("STORE_BACKEND", "redis")  # redis|memory

    redis_url: str | None = os.getenv("REDIS_URL") or None
    redis_host: str = os.getenv("REDIS_HOST", "localhost")
    redis_port: int = int(os.getenv("REDIS_PORT", "6379"))
    redis_password: str | None = os.getenv("REDIS_PASSWORD") or None
    redis_db: int = int(os.getenv("REDIS_DB", "0"))
    redis_timeout: float = float(os.getenv("REDIS_TIMEOUT", "5"))

    cors_origins: list[str] = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    log_level: str = Field(os.getenv("LOG_LEVEL", "INFO"), validate_default=True)
    port: int = int(os.getenv("PORT", "5000"))

    seed_on_startup: bool = os.getenv("SEED_ON_STARTUP", "1") == "1"
    seed_random_seed: int = int(os.getenv("SEED_RANDOM_SEED", "42"))

    simulate_telemetry: bool = os.getenv("SIMULATE_TELEMETRY", "0") == "1"
    simulate_interval: float = float(os.getenv("SIMULATE_INTERVAL", "10"))

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, v: str) -> str:
        return v.strip().upper()

settings = Settings()
