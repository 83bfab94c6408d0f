from functools import lru_cache
import os
from pydantic import BaseModel, Field


class Settings(BaseModel):
    env: str = Field(default="dev", alias="ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    lesson_timezone: str = Field(default="UTC", alias="LESSON_TIMEZONE")

    database_url: str = Field(default="", alias="DATABASE_URL")
    postgres_db: str = Field(default="tokiconnect", alias="POSTGRES_DB")
    postgres_user: str = Field(default="tokiconnect", alias="POSTGRES_USER")
    postgres_password: str = Field(default="tokiconnect", alias="POSTGRES_PASSWORD")
    postgres_host: str = Field(default="localhost", alias="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, alias="POSTGRES_PORT")

    jwt_secret: str = Field(default="secret", alias="JWT_SECRET")
    jwt_expire_min: int = Field(default=43200, alias="JWT_EXPIRE_MIN")

    payment_provider: str = Field(default="stub", alias="PAYMENT_PROVIDER")
    payment_currency: str = Field(default="usd", alias="PAYMENT_CURRENCY")
    public_base_url: str = Field(default="http://localhost:3000", alias="PUBLIC_BASE_URL")
    payment_success_path: str = Field(
        default="/dashboard/payment-success", alias="PAYMENT_SUCCESS_PATH"
    )
    payment_cancel_path: str = Field(
        default="/dashboard/payment-canceled", alias="PAYMENT_CANCEL_PATH"
    )
    stripe_secret_key: str = Field(default="", alias="STRIPE_SECRET_KEY")
    stripe_webhook_secret: str = Field(default="", alias="STRIPE_WEBHOOK_SECRET")

    booking_window_days: int = Field(default=14, alias="BOOKING_WINDOW_DAYS")

    class Config:
        populate_by_name = True

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg2://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(**os.environ)
