from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env from the working directory
load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    DATABASE_URL: str = Field(default="mongodb://localhost:27017")
    DATABASE_NAME: str = Field(default="storefront")

    JWT_SECRET: str = Field(default="change-me-in-production")
    JWT_EXPIRES_DAYS: int = Field(default=7)

    BRAINTREE_MERCHANT_ID: str = Field(default="")
    BRAINTREE_PUBLIC_KEY: str = Field(default="")
    BRAINTREE_PRIVATE_KEY: str = Field(default="")
    BRAINTREE_ENVIRONMENT: str = Field(default="sandbox")

    # Adds the raw downstream error text to error responses.
    EXPOSE_ERROR_DETAIL: bool = Field(default=False)
    # Recompute the checkout total from catalog prices instead of the cart.
    REPRICE_CART: bool = Field(default=False)

    CORS_ORIGINS: str = Field(default="*")
    PORT: int = Field(default=8000)
    LOG_LEVEL: str = Field(default="INFO")

    @property
    def cors_origins(self):
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
