from functools import lru_cache
from pathlib import Path

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    app_name: str = Field(default="ReceiptPro Service")
    data_path: Path = Field(
        default=Path("./data/receiptpro.json"),
        description="JSON file backing the key-value store",
    )
    use_memory_store: bool = Field(
        default=False
    )
    pdf_oversampling: int = Field(
        default=2, ge=1, le=4
    )
    email_api_url: AnyHttpUrl = Field(
        default="https://api.emailjs.com/api/v1.0/email/send"
    )
    email_timeout: float = Field(
        default=10.0
    )

    model_config = SettingsConfigDict(env_prefix="RECEIPTPRO_", case_sensitive=False)

    @field_validator("data_path", mode="before")
    def _expand_data_path(cls, value):
        if isinstance(value, str):
            return Path(value.strip()).expanduser()
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()
