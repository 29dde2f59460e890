"""Application configuration from environment."""
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings
from functools import lru_cache

# Load .env from project root (parent of app/) so env vars are available everywhere
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=_env_path)


class Settings(BaseSettings):
    app_name: str = "Affiliate Portal API"
    app_env: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    database_url: str = "sqlite:///./affiliate_portal.db"

    jwt_secret_key: str = "jwt-secret-change-me"
    jwt_algorithm: str = "HS256"

    @field_validator("jwt_secret_key")
    @classmethod
    def strip_jwt_secret(cls, v: str) -> str:
        return (v or "").strip()

    jwt_access_token_expire_minutes: int = 60

    # Setup links are built only from these templates; {frontend_url} and {token} are substituted.
    frontend_url: str = "http://localhost:5173"
    admin_setup_link_template: str = "{frontend_url}/admin-setup?token={token}"
    member_setup_link_template: str = "{frontend_url}/member-setup/{token}"
    admin_invitation_expire_days: int = 7
    member_invitation_expire_days: int = 7

    @field_validator("frontend_url")
    @classmethod
    def strip_frontend_url(cls, v: str) -> str:
        return (v or "").strip().rstrip("/")

    password_min_length: int = 12
    password_require_upper: bool = True
    password_require_lower: bool = True
    password_require_digit: bool = True
    password_require_special: bool = True

    # Where new-member registration notices go
    admin_notification_email: str = "customercare@example.com"
    admin_notification_name: str = "Portal Admin"

    sendgrid_api_key: str = ""
    sendgrid_from_email: str = "noreply@example.com"
    sendgrid_from_name: str = "Affiliate Portal"

    mailgun_api_key: str = ""
    mailgun_domain: str = ""
    mailgun_base_url: str = "https://api.mailgun.net"
    mailgun_from_email: str = "noreply@example.com"
    mailgun_from_name: str = "Affiliate Portal"

    @field_validator("mailgun_api_key", "mailgun_domain", "mailgun_base_url", "mailgun_from_email", mode="before")
    @classmethod
    def strip_mailgun(cls, v: str) -> str:
        return (v or "").strip()

    cors_origins: str = "*"

    class Config:
        env_file = str(_env_path)
        extra = "ignore"

    def setup_link(self, template: str, token: str) -> str:
        return template.format(frontend_url=self.frontend_url, token=token)

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
