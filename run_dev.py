import logging
import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s RUN_DEV.PY - [%(levelname)s] - %(message)s'
)
logger = logging.getLogger("run_dev_script")

TRUTHY = ("true", "1", "yes", "on", "t")


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).lower() in TRUTHY


if __name__ == "__main__":
    dotenv_path = Path(__file__).parent.resolve() / ".env"
    if dotenv_path.exists():
        load_dotenv(dotenv_path=dotenv_path, override=True)
        logger.info(f"Loaded environment from {dotenv_path}")
    else:
        logger.warning(f"No .env at {dotenv_path}; using OS environment and Settings defaults.")

    # Imported after the .env is loaded so Settings sees it.
    from tenant_overlay.settings import Settings

    settings = Settings()
    logger.info(
        f"Config store: {settings.storage_backend}"
        + (f" ({settings.sqlite_db_path})" if settings.storage_backend == "sqlite" else "")
    )
    logger.info(f"Invalidation bus: {settings.invalidation_backend}")
    logger.info(f"Default tenant: {settings.default_tenant_slug or '<none, fallback disabled>'}")
    logger.info(f"Template: {settings.default_template_path}")
    logger.info(f"Admin API: {'enabled' if settings.admin_api_key else 'disabled (ADMIN_API_KEY unset)'}")

    host = os.getenv("DEV_SERVER_HOST", "127.0.0.1")
    port = int(os.getenv("DEV_SERVER_PORT", "8000"))
    reload = _env_flag("DEV_SERVER_RELOAD", settings.debug_mode)

    logger.info(f"Starting tenant_overlay.main:app on {host}:{port} (reload={reload})")
    uvicorn.run(
        "tenant_overlay.main:app",
        host=host,
        port=port,
        log_level=os.getenv("DEV_SERVER_LOG_LEVEL", "debug" if settings.debug_mode else "info").lower(),
        reload=reload,
    )
