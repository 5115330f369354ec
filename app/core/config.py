from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# -------------------------------------------------
# Explicitly load .env (CRITICAL)
# -------------------------------------------------

BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_PATH = BASE_DIR / ".env"

load_dotenv(dotenv_path=ENV_PATH)


class Settings(BaseSettings):
    DATABASE_URL: str
    SECRET_KEY: str
    ENVIRONMENT: str = "development"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    ALGORITHM: str = "HS256"

    SQL_ECHO: bool = False
    LOG_LEVEL: str = "INFO"
    # Create tables on startup (local/dev); production uses `alembic upgrade head`
    AUTO_CREATE_TABLES: bool = False

    # Rental rules
    MAX_CONCURRENT_RENTALS: int = Field(default=3, description="Max pending/active rentals per customer (admins exempt)")
    PROVIDER_VERIFY_THRESHOLD: int = Field(default=10, description="Completed rentals after which a provider is auto-verified")
    DEPOSIT_RATE: float = Field(default=0.10, description="Share of final price charged when a deposit is paid at booking")
    STRICT_RENTAL_OVERLAP: bool = Field(
        default=False,
        description="Use a full interval-overlap test instead of existing.return_date > new.start_date",
    )

    class Config:
        extra = "ignore"
        env_file = str(ENV_PATH)
        env_file_encoding = "utf-8"


settings = Settings()
