import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

from chui.utils.env_helper import env_bool, env_list, env_none_or_str

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, read once from the environment (.env supported)."""

    supabase_url: str | None = None
    supabase_key: str | None = None
    jwt_secret: str | None = None
    storage: str = "supabase"
    allow_underscore: bool = False
    username_email_domain: str = "users.chui.local"
    cors_origins: list[str] = field(default_factory=list)
    log_level: str = "INFO"
    json_logs: bool = False

    @property
    def jwt_issuer(self) -> str | None:
        if not self.supabase_url:
            return None
        return f"{self.supabase_url.rstrip('/')}/auth/v1"


def load_settings() -> Settings:
    return Settings(
        supabase_url=env_none_or_str("PUBLIC_SUPABASE_URL"),
        supabase_key=env_none_or_str("SECRET_API_KEY"),
        jwt_secret=env_none_or_str("SUPABASE_JWT_SECRET"),
        storage=os.getenv("CHUI_STORAGE", "supabase").lower(),
        allow_underscore=env_bool("CHUI_USERNAME_ALLOW_UNDERSCORE", default=False),
        username_email_domain=os.getenv(
            "CHUI_USERNAME_EMAIL_DOMAIN", "users.chui.local"
        ),
        cors_origins=env_list(
            "CHUI_CORS_ORIGINS", ["http://localhost:5173", "http://localhost:8080"]
        ),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        json_logs=env_bool("LOG_JSON", default=False),
    )


settings = load_settings()
