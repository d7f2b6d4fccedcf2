# tenant_overlay/cli/tenant_cli.py
import typer
from typing import Annotated, List, Optional

from .utils_cli import make_api_request

app = typer.Typer(
    name="tenant",
    help="Manage tenants via the Admin API.",
    no_args_is_help=True
)


@app.command("create")
def create_tenant(
    slug: Annotated[
        str,
        typer.Option(prompt="Tenant slug (e.g., acme)", help="Unique identifier for the tenant.")
    ],
    name: Annotated[str, typer.Option(prompt="Display name", help="Display name for the tenant.")],
    status: Annotated[str, typer.Option(help="Status (active, suspended).")] = "active",
    domains: Annotated[
        Optional[List[str]],
        typer.Option("--domain", help="Custom domain identifying the tenant. Repeatable.")
    ] = None
):
    """Create a new tenant."""
    payload = {"slug": slug, "display_name": name, "status": status, "custom_domains": domains or []}
    make_api_request("POST", "/admin/tenants/", json_payload=payload, expected_status=201)


@app.command("get")
def get_tenant(slug: Annotated[str, typer.Argument(help="The slug of the tenant to retrieve.")]):
    """Get details for a specific tenant."""
    make_api_request("GET", f"/admin/tenants/{slug}")


@app.command("list")
def list_tenants(
    skip: Annotated[int, typer.Option("--skip", help="Number of tenants to skip.", min=0)] = 0,
    limit: Annotated[
        int, typer.Option("--limit", help="Maximum number of tenants to return.", min=1, max=100)
    ] = 100
):
    """List tenants."""
    make_api_request("GET", "/admin/tenants/", params_payload={"skip": skip, "limit": limit})


@app.command("update")
def update_tenant(
    slug: Annotated[str, typer.Argument(help="The slug of the tenant to update.")],
    new_name: Annotated[Optional[str], typer.Option("--name", help="New display name.")] = None,
    new_status: Annotated[
        Optional[str], typer.Option("--status", help="New status (active, suspended, deleted).")
    ] = None,
    domains: Annotated[
        Optional[List[str]],
        typer.Option("--domain", help="Custom domain. Repeatable; REPLACES the current list.")
    ] = None
):
    """Update an existing tenant. Only provided fields will be updated."""
    payload = {}
    if new_name is not None:
        payload["display_name"] = new_name
    if new_status is not None:
        payload["status"] = new_status
    if domains is not None:
        payload["custom_domains"] = domains

    if not payload:
        typer.echo("No update parameters provided. Nothing to do.")
        raise typer.Exit()

    make_api_request("PUT", f"/admin/tenants/{slug}", json_payload=payload)


@app.command("delete")
def delete_tenant(slug: Annotated[str, typer.Argument(help="The slug of the tenant to delete.")]):
    """Soft-delete a tenant (its status becomes 'deleted')."""
    make_api_request("DELETE", f"/admin/tenants/{slug}")


if __name__ == "__main__":
    app()
