"""Configuration settings for the application."""
from typing import List
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_name: str = "BudgetFlow API"
    debug: bool = False
    log_level: str = "INFO"
    database_path: str = "budgetflow.db"
    cors_origins: List[str] = ["*"]

    # Auth
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_days: int = 7
    bcrypt_rounds: int = 12

    # Groups / invites
    invite_expiry_days: int = 7
    frontend_url: str = "http://localhost:3000"
    # Require the redeeming account's email to match the invited address
    bind_invites_to_email: bool = False

    # Mail delivery (SendGrid); console logging when no key is set
    sendgrid_api_key: str = ""
    email_from: str = "no-reply@budgetflow.app"
    mail_timeout_seconds: float = 10.0

    # Chat replies
    currency_symbol: str = "₹"


settings = Settings()
