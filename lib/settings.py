"""Environment settings and batch-fatal error types.

Values come from the process environment, optionally seeded from a .env file.
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

# Load environment variables from .env file
load_dotenv()


class ConfigError(RuntimeError):
    """A required setting is missing. Fatal for the whole batch."""


class InputError(RuntimeError):
    """A required input file or column is missing or malformed. Fatal for the whole batch."""


def get_env(*names: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    """First non-empty value among the given variable names."""
    for name in names:
        value = os.getenv(name)
        if value and value.strip():
            return value.strip()
    if required:
        raise ConfigError(f"Missing environment variable: {' or '.join(names)}")
    return default


class Settings(BaseModel):
    """Resolved settings for one job run."""
    model_config = ConfigDict(frozen=True)

    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    here_api_key: Optional[str] = None
    serper_api_key: Optional[str] = None
    slack_webhook_url: Optional[str] = None
    geo_country: str = "Australia"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            supabase_url=get_env("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"),
            supabase_key=get_env("SUPABASE_SERVICE_ROLE_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY"),
            here_api_key=get_env("HERE_API_KEY"),
            serper_api_key=get_env("SERPER_API_KEY"),
            slack_webhook_url=get_env("SLACK_WEBHOOK_URL"),
            geo_country=get_env("GEO_COUNTRY", default="Australia"),
        )

    def require_store(self) -> None:
        """Raise ConfigError unless store credentials are present."""
        if not self.supabase_url:
            raise ConfigError("Missing SUPABASE_URL (or NEXT_PUBLIC_SUPABASE_URL)")
        if not self.supabase_key:
            raise ConfigError(
                "Missing SUPABASE_SERVICE_ROLE_KEY (or NEXT_PUBLIC_SUPABASE_ANON_KEY)"
            )
