# tenant_overlay/cli/override_cli.py
import typer
from pathlib import Path
from typing import Annotated, Optional

from .utils_cli import load_json_argument, make_api_request

app = typer.Typer(
    name="override",
    help="Manage tenant configuration overrides via the Admin API.",
    no_args_is_help=True
)

DocumentArg = Annotated[Optional[str], typer.Argument(help="Override document as a JSON string.")]
FileOpt = Annotated[
    Optional[Path], typer.Option("--file", "-f", exists=True, dir_okay=False, help="Read the document from a file.")
]


@app.command("get")
def get_override(slug: Annotated[str, typer.Argument(help="Tenant slug.")]):
    """Show a tenant's override and its version."""
    make_api_request("GET", f"/admin/tenants/{slug}/override")


@app.command("set")
def set_override(
    slug: Annotated[str, typer.Argument(help="Tenant slug.")],
    document: DocumentArg = None,
    file: FileOpt = None
):
    """Replace a tenant's override. The server rejects documents that would not validate."""
    payload = {"document": load_json_argument(document, file, "override document")}
    make_api_request("PUT", f"/admin/tenants/{slug}/override", json_payload=payload)


@app.command("preview")
def preview_override(
    slug: Annotated[str, typer.Argument(help="Tenant slug.")],
    document: DocumentArg = None,
    file: FileOpt = None
):
    """Validate an override without storing it."""
    payload = {"document": load_json_argument(document, file, "override document")}
    make_api_request("POST", f"/admin/tenants/{slug}/override/preview", json_payload=payload)


@app.command("delete")
def delete_override(slug: Annotated[str, typer.Argument(help="Tenant slug.")]):
    """Remove a tenant's override; the tenant falls back to the template."""
    make_api_request(
        "DELETE",
        f"/admin/tenants/{slug}/override",
        expected_status=204,
        expect_json_response=False
    )


if __name__ == "__main__":
    app()
