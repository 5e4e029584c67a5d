import os

from dotenv import load_dotenv


def _validate_url(name, value):
    """Return value without a trailing slash, or raise if it is not an http(s) URL."""
    if value and not value.lower().startswith(("http://", "https://")):
        raise ValueError(f"{name} must start with http:// or https://, got: {value}")
    return value.rstrip("/") if value else ""


class Config:
    def __init__(self, env_file=None):
        """
        Initialize configuration by loading environment variables and setting default attributes.

        Loads environment variables from the provided .env file path when `env_file` is given; otherwise loads from the default environment. After loading, sets the database connection parameters, automation webhook endpoints, Supabase storage settings, change notification settings and web app settings using environment values with sensible defaults.
        Parameters:
            env_file (str | None): Optional path to a .env file to load environment variables from. If omitted, the default environment or default .env discovery is used.
        """
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        # Automation webhooks (n8n)
        self.SUBMIT_WEBHOOK_URL = _validate_url(
            "SUBMIT_WEBHOOK_URL", os.getenv("SUBMIT_WEBHOOK_URL", "")
        )
        self.AUDIO_WEBHOOK_URL = _validate_url(
            "AUDIO_WEBHOOK_URL", os.getenv("AUDIO_WEBHOOK_URL", "")
        )

        # Web application configuration
        self.WEB_ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*")
        self.WEB_RATE_LIMIT = os.getenv("RATE_LIMIT", "10/minute")
        self.WEB_PORT = int(os.getenv("PORT", "8080"))
        self.WEB_STREAM_INTERVAL = float(os.getenv("STREAM_INTERVAL", "1.0"))

        # Database configuration
        self.DATABASE_URL = os.getenv(
            "DATABASE_URL", "sqlite:///./episode_studio.db"
        )
        self.DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "3"))  # Supabase-optimized
        self.DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "2"))  # Supabase-optimized
        self.DB_POOL_PRE_PING = os.getenv("DB_POOL_PRE_PING", "true").lower() == "true"
        self.DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"

        # Change notifications (Postgres LISTEN/NOTIFY)
        self.CHANGE_CHANNEL = os.getenv("CHANGE_CHANNEL", "autoworkflow_changes")
        self.CHANGE_LISTENER_ENABLED = (
            os.getenv("CHANGE_LISTENER_ENABLED", "true").lower() == "true"
        )

        # Supabase configuration
        self.SUPABASE_URL = _validate_url("SUPABASE_URL", os.getenv("SUPABASE_URL", ""))
        self.SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
        self.COVER_ART_BUCKET = os.getenv("COVER_ART_BUCKET", "podcast_assets")
        self.STORAGE_RETRY_ATTEMPTS = int(os.getenv("STORAGE_RETRY_ATTEMPTS", "3"))
        self.STORAGE_TIMEOUT = int(os.getenv("STORAGE_TIMEOUT", "60"))

    @property
    def uses_postgres(self):
        """Whether the configured store supports LISTEN/NOTIFY."""
        return self.DATABASE_URL.startswith(("postgresql", "postgres://"))

    def load_config(self):
        """
        Prints selected configuration values useful for debugging.
        """
        print(f"Database: {self.DATABASE_URL.split('@')[-1]}")
        print(f"Submit webhook: {self.SUBMIT_WEBHOOK_URL or '(not set)'}")
        print(f"Audio webhook: {self.AUDIO_WEBHOOK_URL or '(not set)'}")
        print(f"Cover art bucket: {self.COVER_ART_BUCKET}")
