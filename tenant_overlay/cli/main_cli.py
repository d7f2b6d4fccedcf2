# tenant_overlay/cli/main_cli.py
import typer
from typing import Annotated, Optional

from . import admin_cli
from . import config

app = typer.Typer(
    name="tenant-overlay",
    help="Tenant Overlay Engine Command Line Interface.",
    no_args_is_help=True
)

app.add_typer(admin_cli.app, name="admin")


@app.callback()
def main_callback(
    base_url: Annotated[
        Optional[str],
        typer.Option("--base-url", help="API base URL (default: TENANT_OVERLAY_CLI_API_BASE_URL).")
    ] = None,
    api_key: Annotated[
        Optional[str],
        typer.Option("--api-key", help="Admin API key (default: ADMIN_API_KEY).", show_default=False)
    ] = None,
):
    """
    Talk to a running Tenant Overlay server.
    Use 'tenant-overlay admin --help' for the administrative commands.
    """
    if base_url:
        config.TENANT_OVERLAY_CLI_API_BASE_URL = base_url.rstrip("/")
    if api_key:
        config.TENANT_OVERLAY_CLI_ADMIN_API_KEY = api_key


def cli_entry_point():
    """Console script entry point (``tenant-overlay``)."""
    app()


if __name__ == "__main__":
    cli_entry_point()
