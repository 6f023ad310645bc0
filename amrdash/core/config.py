"""
AMR Dashboard Core Configuration

Settings are read from the environment (and an optional .env file).
The database endpoint and its service credential are required.
"""
from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url

from .exceptions import ConfigurationError


class AppSettings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Basic info
    app_name: str = Field(default="AMR Surveillance API", description="Application name")
    version: str = Field(default="1.0.0", description="Version")
    app_env: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Debug mode")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_dir: Path = Field(default=Path("logs"), description="Log directory")

    # HTTP
    api_prefix: str = Field(default="/api", description="Path prefix for every route")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")
    host: str = Field(default="0.0.0.0", description="Bind address for `serve`")
    port: int = Field(default=8000, description="Bind port for `serve`")

    # Database (required)
    database_url: str = Field(description="Database endpoint, e.g. postgresql+asyncpg://postgres@db.example.org:5432/postgres")
    database_service_key: SecretStr = Field(description="Privileged database credential")
    db_echo: bool = Field(default=False, description="Echo SQL statements")
    db_pool_size: int = Field(default=10, description="Connection pool size")
    db_max_overflow: int = Field(default=20, description="Max overflow connections")

    # Surveillance defaults
    fetch_timeout: float = Field(default=30.0, gt=0, le=120, description="Per-fetch timeout in seconds")
    min_sample_size: int = Field(default=30, ge=0, description="Minimum denominator before a rate is reported")
    organism_view: str = Field(default="organism_mapping", description="Organism code -> name view")
    antibiotic_view: str = Field(default="antibiotic_mapping", description="Antibiotic column -> name view")

    @field_validator("log_dir")
    @classmethod
    def ensure_path_exists(cls, v: Path) -> Path:
        """Make sure the directory exists"""
        v.mkdir(parents=True, exist_ok=True)
        return v

    @field_validator("api_prefix")
    @classmethod
    def normalize_prefix(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if v and not v.startswith("/"):
            v = "/" + v
        return v

    @property
    def is_development(self) -> bool:
        """Development environment?"""
        return self.app_env.lower() in ("dev", "development")

    @property
    def is_production(self) -> bool:
        """Production environment?"""
        return self.app_env.lower() in ("prod", "production")

    @property
    def database_dsn(self) -> str:
        """Database URL with the service credential set as password."""
        url = make_url(self.database_url).set(
            password=self.database_service_key.get_secret_value()
        )
        return url.render_as_string(hide_password=False)

    @property
    def database_host(self) -> str:
        """Host part of the endpoint, safe for logs."""
        url = make_url(self.database_url)
        return f"{url.host or 'local'}:{url.port or '-'}/{url.database or ''}"


def load_settings(**overrides) -> AppSettings:
    """
    Build settings, turning validation failures into ConfigurationError

    Args:
        **overrides: explicit values taking precedence over the environment

    Raises:
        ConfigurationError: a required setting is missing or invalid
    """
    try:
        return AppSettings(**overrides)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise ConfigurationError(
            f"Invalid or missing settings: {', '.join(fields)}", fields=fields
        ) from e


@lru_cache
def get_config() -> AppSettings:
    """
    Settings singleton

    lru_cache keeps a single settings instance per process
    """
    return load_settings()


if __name__ == "__main__":
    from rich import print as rprint
    from rich.table import Table

    cfg = get_config()

    table = Table(title="AMR Surveillance API Configuration", show_header=True, header_style="bold magenta")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("App Name", cfg.app_name)
    table.add_row("Version", cfg.version)
    table.add_row("Environment", cfg.app_env)
    table.add_row("Log Level", cfg.log_level)
    table.add_row("Database", cfg.database_host)
    table.add_row("Fetch Timeout", f"{cfg.fetch_timeout}s")
    table.add_row("Min Sample Size", str(cfg.min_sample_size))

    rprint(table)
