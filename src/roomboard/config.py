from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str
    host: str
    port: int
    debug: bool
    production: bool = False  # Enables the Secure flag on auth and device cookies
    cors_origins: list[str] = []
    page_size: int = 20  # Default number of rooms per listing page
    max_devices: int = 2  # Concurrently valid devices per user
    session_max_age: int = 30 * 24 * 60 * 60  # Auth session and auth cookie lifetime, seconds
    device_cookie_max_age: int = 30 * 24 * 60 * 60  # Lifetime of device cookies and idle device sessions, seconds
    filter_aliases_path: str | None = None  # Optional JSON file overriding the legacy filter value tables
    admin_password: str | None = None  # Password for the bootstrap "admin" account, created on first start when set

    model_config = {
        "env_file": [".env"],
        "env_prefix": "ROOMBOARD_",
        "extra": "ignore",
    }
