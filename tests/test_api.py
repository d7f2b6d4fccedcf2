# tests/test_api.py
import asyncio

from fastapi import Depends
from fastapi.testclient import TestClient

from tenant_overlay.dependencies import current_tenant_context, get_tenant_context, require_capacity, require_feature
from tenant_overlay.main import create_app
from tenant_overlay.tenants.memory_config_store import InMemoryConfigStore

from .conftest import make_settings


def create_tenant(client, admin_headers, slug="acme", **fields):
    body = {"slug": slug, "display_name": slug.title(), **fields}
    response = client.post("/admin/tenants/", json=body, headers=admin_headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["store"] == "InMemoryConfigStore"


def test_request_without_signal_uses_default_tenant(client):
    response = client.get("/tenant/context")

    assert response.status_code == 200
    assert response.json()["slug"] == "default"
    assert response.json()["identification"]["fallback_reason"] == "no_signal"
    assert response.headers["X-Tenant-Slug"] == "default"
    assert response.headers["X-Tenant-Identification"] == "default"


def test_admin_routes_require_the_api_key(client, admin_headers):
    assert client.get("/admin/tenants/").status_code == 401
    assert client.get("/admin/tenants/", headers={"X-Admin-API-Key": "wrong"}).status_code == 403
    assert client.get("/admin/tenants/", headers=admin_headers).status_code == 200


def test_admin_routes_disabled_without_server_key(tmp_path):
    app = create_app(make_settings(admin_api_key=None), store=InMemoryConfigStore())
    with TestClient(app) as client:
        response = client.get("/admin/tenants/", headers={"X-Admin-API-Key": "anything"})

    assert response.status_code == 503


def test_tenant_crud(client, admin_headers):
    created = create_tenant(client, admin_headers, custom_domains=["portal.acme-corp.com"])
    assert created["status"] == "active"

    duplicate = client.post("/admin/tenants/", json={"slug": "acme", "display_name": "x"}, headers=admin_headers)
    assert duplicate.status_code == 409

    invalid = client.post("/admin/tenants/", json={"slug": "Not A Slug", "display_name": "x"}, headers=admin_headers)
    assert invalid.status_code == 422

    updated = client.put("/admin/tenants/acme", json={"display_name": "Acme Corp"}, headers=admin_headers)
    assert updated.json()["display_name"] == "Acme Corp"

    assert [t["slug"] for t in client.get("/admin/tenants/", headers=admin_headers).json()] == ["acme"]
    assert client.get("/admin/tenants/nope", headers=admin_headers).status_code == 404

    deleted = client.delete("/admin/tenants/acme", headers=admin_headers)
    assert deleted.json()["status"] == "deleted"
    assert client.get("/admin/tenants/acme", headers=admin_headers).json()["status"] == "deleted"


def test_tenant_identified_by_header_subdomain_and_domain(client, admin_headers):
    create_tenant(client, admin_headers, custom_domains=["portal.acme-corp.com"])

    by_header = client.get("/tenant/context", headers={"X-Tenant-Slug": "acme"})
    by_subdomain = client.get("/tenant/context", headers={"host": "acme.example.com"})
    by_domain = client.get("/tenant/context", headers={"host": "portal.acme-corp.com"})

    assert by_header.json()["slug"] == "acme"
    assert by_subdomain.json()["identification"]["method"] == "subdomain"
    assert by_domain.json()["identification"]["method"] == "custom_domain"


def test_unknown_tenant_header_falls_back(client):
    response = client.get("/tenant/context", headers={"X-Tenant-Slug": "nope"})

    assert response.status_code == 200
    assert response.json()["identification"] == {
        "slug": "default",
        "method": "default",
        "fallback_reason": "unknown_candidate",
        "candidate": "nope",
    }


def test_override_lifecycle(client, admin_headers):
    create_tenant(client, admin_headers)
    headers = {"X-Tenant-Slug": "acme"}

    assert client.get("/tenant/context", headers=headers).json()["limits"]["maxUsers"] == 25

    rejected = client.put(
        "/admin/tenants/acme/override",
        json={"document": {"limits": {"maxUsers": 10, "maxWidgets": 1}}},
        headers=admin_headers,
    )
    assert rejected.status_code == 422
    assert rejected.json()["error"] == "override_rejected"
    assert rejected.json()["issues"][0]["path"] == "limits.maxWidgets"

    preview = client.post(
        "/admin/tenants/acme/override/preview",
        json={"document": {"security": {"sessionTimeoutSeconds": 1}}},
        headers=admin_headers,
    )
    assert preview.json()["valid"] is False
    assert preview.json()["issues"][0]["path"] == "security.sessionTimeoutSeconds"

    stored = client.put(
        "/admin/tenants/acme/override",
        json={"document": {"limits": {"maxUsers": 10}, "features": {"jobBoard": {"enabled": True}}}},
        headers=admin_headers,
    )
    assert stored.status_code == 200
    assert stored.json()["version"] == 1

    context = client.get("/tenant/context", headers=headers).json()
    assert context["version"] == 1
    assert context["limits"]["maxUsers"] == 10
    assert "jobBoard" in context["features"]
    assert client.get("/admin/tenants/acme/override", headers=admin_headers).json()["version"] == 1

    assert client.delete("/admin/tenants/acme/override", headers=admin_headers).status_code == 204
    assert client.get("/tenant/context", headers=headers).json()["limits"]["maxUsers"] == 25
    assert client.get("/admin/tenants/acme/override", headers=admin_headers).status_code == 404


def test_override_for_unknown_tenant(client, admin_headers):
    response = client.put(
        "/admin/tenants/nope/override", json={"document": {}}, headers=admin_headers
    )

    assert response.status_code == 404
    assert response.json()["error"] == "tenant_not_found"


def test_inactive_tenant_is_rejected(client, admin_headers):
    create_tenant(client, admin_headers, status="suspended")
    headers = {"X-Tenant-Slug": "acme"}

    response = client.get("/tenant/context", headers=headers)
    assert response.status_code == 403
    assert response.json() == {"error": "tenant_inactive", "message": "Tenant 'acme' is not active."}

    decision = client.post("/tenant/authorize", json={"feature": "polls"}, headers=headers)
    assert decision.json()["allowed"] is False
    assert decision.json()["reason"] == "TenantInactive"


def test_authorize_endpoint(client, admin_headers, usage):
    create_tenant(client, admin_headers)
    client.put(
        "/admin/tenants/acme/override",
        json={"document": {"limits": {"maxUsers": 10}}},
        headers=admin_headers,
    )
    asyncio.run(usage.set("acme", "users", 10))
    headers = {"X-Tenant-Slug": "acme"}

    denied = client.post("/tenant/authorize", json={"resource": "users", "delta": 1}, headers=headers)
    assert denied.json() == {
        "allowed": False,
        "reason": "LimitExceeded",
        "detail": "users: 10 + 1 exceeds limit 10.",
    }
    allowed = client.post("/tenant/authorize", json={"resource": "users", "delta": 0}, headers=headers)
    assert allowed.json()["allowed"] is True

    assert client.post("/tenant/authorize", json={"feature": "jobBoard"}, headers=headers).json()["reason"] \
        == "FeatureDisabled"
    assert client.post("/tenant/authorize", json={"resource": "widgets"}, headers=headers).status_code == 422
    assert client.post("/tenant/authorize", json={}, headers=headers).status_code == 422


def test_stylesheet(client):
    response = client.get("/brand-identity.css")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/css")
    assert response.headers["cache-control"] == "public, max-age=300"
    assert response.headers["X-Tenant-Slug"] == "default"
    assert "--colors-interactive-base-brand-primary: #1A365D;" in response.text


def test_stylesheet_reflects_the_override(client, admin_headers):
    create_tenant(client, admin_headers)
    client.put(
        "/admin/tenants/acme/override",
        json={"document": {"brandIdentity": {"colors": {"palette": {"brandPrimary": "#FF0000"}}}}},
        headers=admin_headers,
    )

    response = client.get("/brand-identity.css", headers={"host": "acme.example.com"})

    assert "--colors-interactive-base-brand-primary: #FF0000;" in response.text


def test_variables(client):
    dotted = client.get("/brand-identity/variables").json()
    dashed = client.get("/brand-identity/variables", params={"format": "dashed"}).json()

    assert dotted["format"] == "dotted"
    assert {"name": "colors.palette.brandPrimary", "value": "#1A365D"} in dotted["variables"]
    assert all(item["name"].startswith("--") for item in dashed["variables"])
    assert len(dotted["variables"]) == len(dashed["variables"])


def test_brand_assets(client, admin_headers, tmp_path):
    create_tenant(client, admin_headers)
    logo = tmp_path / "acme" / "default" / "logos" / "logo.svg"
    logo.parent.mkdir(parents=True)
    logo.write_text("<svg/>")
    headers = {"X-Tenant-Slug": "acme"}

    found = client.get("/brand-identity/brand/default/logos/logo.svg", headers=headers)
    assert found.status_code == 200
    assert found.text == "<svg/>"

    missing = client.get("/brand-identity/brand/default/logos/missing.svg", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["error"] == "brand_asset_not_found"

    assert client.get("/brand-identity/brand/default/scripts/logo.svg", headers=headers).status_code == 400
    # Another tenant's files are not reachable.
    assert client.get("/brand-identity/brand/default/logos/logo.svg").status_code == 404


def test_cache_and_template_admin(client, admin_headers):
    client.get("/tenant/context")

    invalidated = client.post("/admin/cache/invalidate", json={}, headers=admin_headers)
    assert invalidated.json() == {"invalidated": "*"}
    assert client.get("/health").json()["cache"]["entries"] == 0

    reloaded = client.post("/admin/template/reload", headers=admin_headers)
    assert reloaded.json()["revision"] == 2


def test_capability_dependencies(tmp_path):
    app = create_app(make_settings(brand_assets_root=str(tmp_path)), store=InMemoryConfigStore())

    @app.get("/jobs", dependencies=[Depends(require_feature("jobBoard"))])
    async def jobs():
        return {"ok": True}

    @app.get("/polls", dependencies=[Depends(require_feature("polls")), Depends(require_capacity("polls"))])
    async def polls():
        return {"ok": True}

    @app.get("/scoped", dependencies=[Depends(get_tenant_context)])
    async def scoped(context=Depends(current_tenant_context)):
        return {"slug": context.slug}

    @app.get("/unscoped")
    async def unscoped(context=Depends(current_tenant_context)):
        return {"slug": context.slug}

    with TestClient(app) as client:
        denied = client.get("/jobs")
        assert denied.status_code == 403
        assert denied.json()["error"] == "capability_denied"
        assert denied.json()["reason"] == "FeatureDisabled"

        assert client.get("/polls").json() == {"ok": True}
        assert client.get("/scoped").json() == {"slug": "default"}

        unscoped_response = client.get("/unscoped")
        assert unscoped_response.status_code == 500
        assert unscoped_response.json()["error"] == "tenant_context_missing"
