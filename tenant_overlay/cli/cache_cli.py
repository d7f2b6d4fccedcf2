# tenant_overlay/cli/cache_cli.py
import typer
from typing import Annotated, Optional

from .utils_cli import make_api_request

app = typer.Typer(
    name="cache",
    help="Cache and template maintenance via the Admin API.",
    no_args_is_help=True
)


@app.command("invalidate")
def invalidate(
    slug: Annotated[Optional[str], typer.Argument(help="Tenant slug. Omit to invalidate every tenant.")] = None
):
    """Drop cached tenant contexts on every instance."""
    make_api_request("POST", "/admin/cache/invalidate", json_payload={"slug": slug})


@app.command("reload-template")
def reload_template():
    """Reload the default configuration template from disk."""
    make_api_request("POST", "/admin/template/reload")


@app.command("health")
def health():
    """Show store, invalidation bus and cache status."""
    make_api_request("GET", "/health")


if __name__ == "__main__":
    app()
