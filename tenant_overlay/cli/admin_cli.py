# tenant_overlay/cli/admin_cli.py
import typer
from . import cache_cli
from . import override_cli
from . import tenant_cli

app = typer.Typer(
    name="admin",
    help="Tenants, overrides and cache maintenance through the admin API (X-Admin-API-Key).",
    no_args_is_help=True
)

app.add_typer(tenant_cli.app, name="tenant", help="Tenant records: create, inspect, suspend, soft delete.")
app.add_typer(override_cli.app, name="override", help="Per-tenant configuration overrides.")
app.add_typer(cache_cli.app, name="cache", help="Context cache, default template and health.")
