"""
Runtime settings for the Doveable backend, resolved once at startup
"""
import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables first
load_dotenv()


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseModel):
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    generation_timeout: float = Field(default=120.0, gt=0)

    supabase_url: Optional[str] = None
    supabase_service_key: Optional[str] = None
    supabase_jwt_secret: Optional[str] = None

    generation_cost: int = Field(default=1, ge=1)
    daily_free_credits: int = Field(default=10, ge=0)

    autosave_quiet_seconds: float = Field(default=2.0, gt=0)
    project_ttl_hours: int = Field(default=48, ge=1)
    workspace_idle_minutes: float = Field(default=30.0, gt=0)
    max_workspaces_per_user: int = Field(default=5, ge=1)

    admin_emails: List[str] = []
    cors_origins: List[str] = ["*"]

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment."""
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
            generation_timeout=float(os.getenv("GENERATION_TIMEOUT", "120")),
            supabase_url=os.getenv("SUPABASE_URL") or None,
            supabase_service_key=os.getenv("SUPABASE_SERVICE_KEY") or None,
            supabase_jwt_secret=os.getenv("SUPABASE_JWT_SECRET") or None,
            generation_cost=int(os.getenv("GENERATION_COST", "1")),
            daily_free_credits=int(os.getenv("DAILY_FREE_CREDITS", "10")),
            autosave_quiet_seconds=float(os.getenv("AUTOSAVE_QUIET_SECONDS", "2")),
            project_ttl_hours=int(os.getenv("PROJECT_TTL_HOURS", "48")),
            workspace_idle_minutes=float(os.getenv("WORKSPACE_IDLE_MINUTES", "30")),
            max_workspaces_per_user=int(os.getenv("MAX_WORKSPACES_PER_USER", "5")),
            admin_emails=[email.lower() for email in _split_csv(os.getenv("ADMIN_EMAILS"))],
            cors_origins=_split_csv(os.getenv("CORS_ORIGINS")) or ["*"],
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings instance."""
    return Settings.from_env()
