# tenant_overlay/settings.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import List, Optional
import logging
from pathlib import Path

# Configure logging for settings module
logger = logging.getLogger(__name__)
if not logging.getLogger().hasHandlers():
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s SETTINGS.PY - [%(levelname)s] - %(message)s'
    )

# settings.py lives at <root>/tenant_overlay/settings.py
PROJECT_ROOT = Path(__file__).parent.parent.resolve()
PACKAGE_ROOT = Path(__file__).parent.resolve()
DOTENV_PATH = PROJECT_ROOT / ".env"
DEFAULT_TEMPLATE_PATH = PACKAGE_ROOT / "config" / "default_template.json"

if DOTENV_PATH.exists():
    logger.info(f"SETTINGS.PY: .env file FOUND at explicit path: {DOTENV_PATH}")
else:
    logger.debug(
        f"SETTINGS.PY: .env file NOT FOUND at explicit path: {DOTENV_PATH}. "
        "Will rely on OS env vars or defaults."
    )


class Settings(BaseSettings):
    """Engine settings with environment variable support."""

    app_name: str = "Tenant Overlay Engine"
    debug_mode: bool = False
    log_level: str = "INFO"

    # Config Store backend: "memory" or "sqlite"
    storage_backend: str = "sqlite"
    sqlite_db_path: str = "./tenant_overlay_data.sqlite3"

    default_template_path: str = str(DEFAULT_TEMPLATE_PATH)

    # Tenant identification
    default_tenant_slug: Optional[str] = Field(
        default="default",
        description="Slug used when no signal identifies a tenant. Empty disables the fallback."
    )
    tenant_header_names: List[str] = ["X-Tenant-Slug", "X-Tenant-ID"]
    tenant_query_params: List[str] = ["tenant", "tenantId"]
    reserved_subdomains: List[str] = ["www", "app", "api", "localhost"]

    # Cache layer
    cache_ttl_seconds: float = 300.0
    store_timeout_seconds: float = 2.0

    # Invalidation broadcast: "local" (single process) or "redis"
    invalidation_backend: str = "local"
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: Optional[str] = None
    invalidation_channel: str = "tenant_overlay:invalidate"

    # Theme output
    theme_cache_max_age_seconds: int = 300
    brand_assets_root: str = "./brand_assets"

    admin_api_key: Optional[str] = Field(
        default=None,
        description="API Key for accessing admin routes."
    )

    model_config = SettingsConfigDict(
        env_file=DOTENV_PATH if DOTENV_PATH.exists() else None,
        extra="ignore",
        env_file_encoding='utf-8'
    )


# Initialize settings instance
settings = Settings()

logger.info(
    f"SETTINGS.PY: storage_backend='{settings.storage_backend}', "
    f"invalidation_backend='{settings.invalidation_backend}', "
    f"default_tenant_slug='{settings.default_tenant_slug}', "
    f"cache_ttl_seconds={settings.cache_ttl_seconds}"
)
logger.info(
    f"SETTINGS.PY: admin_api_key: "
    f"{'********' if settings.admin_api_key else 'None'}"
)
