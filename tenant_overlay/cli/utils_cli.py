# tenant_overlay/cli/utils_cli.py
import requests
import typer
import json
from pathlib import Path
from typing import Optional, Dict, Any, Union, List

from . import config


def describe_error_body(response: requests.Response) -> str:
    """One readable block for an error response: engine errors, issue lists, FastAPI details."""
    try:
        body = response.json()
    except ValueError:
        return f"Raw response: {response.text}"
    if not isinstance(body, dict):
        return json.dumps(body, indent=2)

    if "error" in body:
        lines = [f"{body['error']}: {body.get('message', '')}"]
        if body.get("reason"):
            lines.append(f"  reason: {body['reason']}")
        for issue in body.get("issues", []):
            lines.append(f"  - {issue.get('path')}: {issue.get('reason')}")
        return "\n".join(lines)
    return f"Detail: {json.dumps(body.get('detail', body), indent=2)}"


def make_api_request(
    method: str,
    endpoint: str,
    json_payload: Optional[Dict[str, Any]] = None,
    params_payload: Optional[Dict[str, Any]] = None,
    expected_status: Union[int, List[int]] = 200,
    expect_json_response: bool = True
) -> Any:
    """
    Call the server and echo the outcome.

    Exits with code 1 when the server cannot be reached, answers with an
    unexpected status, or returns a body that is not JSON when JSON was expected.
    """
    full_url = f"{config.TENANT_OVERLAY_CLI_API_BASE_URL}{endpoint}"
    headers: Dict[str, str] = {}

    if config.TENANT_OVERLAY_CLI_ADMIN_API_KEY:
        headers["X-Admin-API-Key"] = config.TENANT_OVERLAY_CLI_ADMIN_API_KEY
    elif endpoint.startswith("/admin/"):
        typer.secho(
            "CLI: Warning - no admin API key (set ADMIN_API_KEY or pass --api-key); the server will refuse this call.",
            fg=typer.colors.YELLOW
        )

    typer.echo(f"CLI: {method.upper()} {full_url}")
    if json_payload:
        typer.echo(f"CLI: JSON Payload: {json.dumps(json_payload, indent=2)}")
    if params_payload:
        typer.echo(f"CLI: Query Params: {params_payload}")

    try:
        response = requests.request(
            method,
            full_url,
            json=json_payload,
            params=params_payload,
            headers=headers,
            timeout=30
        )
    except requests.exceptions.ConnectionError as e:
        typer.secho(
            f"CLI: Connection Error - Could not connect to {full_url}. Is the server running? Error: {e}",
            fg=typer.colors.RED
        )
        raise typer.Exit(code=1)
    except requests.exceptions.RequestException as e:
        typer.secho(f"CLI: Request Error - {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    expected_statuses = [expected_status] if isinstance(expected_status, int) else expected_status
    if response.status_code not in expected_statuses:
        typer.secho(
            f"CLI: API Error - HTTP {response.status_code} (expected {expected_status}).\n"
            + describe_error_body(response),
            fg=typer.colors.RED
        )
        raise typer.Exit(code=1)

    if response.status_code == 204 or not expect_json_response:
        typer.secho(f"CLI: Success (HTTP {response.status_code}).", fg=typer.colors.GREEN)
        return None if response.status_code == 204 else response.text

    try:
        data = response.json()
    except ValueError:
        typer.secho(f"CLI: Error - Response is not JSON. Raw text: {response.text}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(data, indent=2))
    return data


def load_json_argument(value: Optional[str], file: Optional[Path], what: str) -> Dict[str, Any]:
    """Parse a JSON object given inline or as a file path."""
    if (value is None) == (file is None):
        typer.secho(f"Error: provide the {what} either inline or with --file.", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    raw = file.read_text(encoding="utf-8") if file is not None else value
    try:
        document = json.loads(raw)
    except json.JSONDecodeError as e:
        typer.secho(f"Error: Invalid JSON provided for {what}: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    if not isinstance(document, dict):
        typer.secho(f"Error: the {what} must be a JSON object.", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    return document
