"""
Settings for the Bilbul backend.

Values come from the environment (a local .env file is loaded first) and are
checked once at import time.
"""
import os
from typing import List
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Environment-driven application settings."""

    # Supabase (identity provider only)
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_PUBLISHABLE_KEY: str = os.getenv("SUPABASE_PUBLISHABLE_KEY", "")

    # Public keys used to verify Supabase access tokens (ES256)
    @property
    def SUPABASE_JWKS_URL(self) -> str:
        if not self.SUPABASE_URL:
            return ""
        return f"{self.SUPABASE_URL.rstrip('/')}/auth/v1/.well-known/jwks.json"

    # Where Supabase sends the browser back after an OAuth sign-in
    OAUTH_REDIRECT_URL: str = os.getenv("OAUTH_REDIRECT_URL", "http://localhost:3000/")

    # Google Gemini (receipt extraction + split suggestion)
    GOOGLE_API_KEY: str = os.getenv("GOOGLE_API_KEY", "")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

    # Upper bound for each external AI call, in seconds
    AGENT_TIMEOUT_SECONDS: float = float(os.getenv("AGENT_TIMEOUT_SECONDS", "30"))

    # Split sessions
    MAX_PARTICIPANTS: int = int(os.getenv("MAX_PARTICIPANTS", "5"))
    MAX_IMAGE_SIZE_MB: int = int(os.getenv("MAX_IMAGE_SIZE_MB", "10"))
    SESSION_TTL_SECONDS: float = float(os.getenv("SESSION_TTL_SECONDS", "3600"))

    # How long an anonymous client's free split stays used (default 30 days)
    USAGE_TTL_SECONDS: float = float(os.getenv("USAGE_TTL_SECONDS", "2592000"))

    # Runtime
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Comma-separated web origins allowed by CORS in production
    CORS_ALLOWED_ORIGINS: List[str] = [
        origin.strip()
        for origin in os.getenv("CORS_ALLOWED_ORIGINS", "").split(",")
        if origin.strip()
    ]

    @classmethod
    def validate(cls) -> None:
        """
        Check that credentials are present and numeric limits make sense.

        Raises:
            ValueError: Describing the first problem found.
        """
        required = {
            "SUPABASE_URL": cls.SUPABASE_URL,
            "SUPABASE_PUBLISHABLE_KEY": cls.SUPABASE_PUBLISHABLE_KEY,
            "GOOGLE_API_KEY": cls.GOOGLE_API_KEY,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}. "
                "Set them in the environment or in .env."
            )

        if cls.AGENT_TIMEOUT_SECONDS <= 0:
            raise ValueError("AGENT_TIMEOUT_SECONDS must be greater than 0")
        if cls.MAX_PARTICIPANTS < 1:
            raise ValueError("MAX_PARTICIPANTS must be at least 1")
        if cls.MAX_IMAGE_SIZE_MB < 1:
            raise ValueError("MAX_IMAGE_SIZE_MB must be at least 1")

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT.lower() == "production"

    @classmethod
    def is_development(cls) -> bool:
        return cls.ENVIRONMENT.lower() == "development"


settings = Settings()

# VALIDATE_CONFIG=false skips the check (tests, tooling)
if os.getenv("VALIDATE_CONFIG", "true").lower() == "true":
    try:
        settings.validate()
    except ValueError as e:
        # Development keeps running so the docs page still loads
        if settings.is_development():
            print(f"⚠️  Warning: {e}")
            print("   Requests that need Supabase or Gemini will fail until this is fixed.")
        else:
            raise
