# tenant_overlay/cli/config.py
"""
Connection settings of the CLI client.

Read from the environment (and the project-root ``.env``) at import time;
``main_cli`` may replace them with ``--base-url`` / ``--api-key``.
"""
import os
from dotenv import load_dotenv
from pathlib import Path

DOTENV_PATH = Path(__file__).parent.parent.parent.resolve() / ".env"

load_dotenv(dotenv_path=DOTENV_PATH, override=True)

TENANT_OVERLAY_CLI_API_BASE_URL = os.getenv("TENANT_OVERLAY_CLI_API_BASE_URL", "http://127.0.0.1:8000")
TENANT_OVERLAY_CLI_ADMIN_API_KEY = os.getenv("ADMIN_API_KEY")
