"""Integration tests for the asset registry API router."""

import pytest

ASSET = {
    "type": "real_estate",
    "title": "Harbour View Apartments",
    "description": "Residential block",
    "total_supply": 1000,
    "nav_price": "100.00",
}


async def create_asset(client, headers, **overrides):
    resp = await client.post("/assets", headers=headers, json={**ASSET, **overrides})
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestCreateAsset:
    async def test_create(self, client, users, headers_for):
        data = await create_asset(client, headers_for(users["admin"]))
        assert data["remaining_supply"] == 1000
        assert data["nav_price"] == "100.00"
        assert data["type"] == "real_estate"

    async def test_investor_forbidden(self, client, users, headers_for):
        resp = await client.post("/assets", headers=headers_for(users["alice"]), json=ASSET)
        assert resp.status_code == 403
        assert resp.json()["code"] == "FORBIDDEN"

    async def test_zero_supply_rejected(self, client, users, headers_for):
        resp = await client.post(
            "/assets", headers=headers_for(users["admin"]), json={**ASSET, "total_supply": 0},
        )
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "ValidationError"
        assert body["code"] == "VALIDATION_ERROR"
        assert "total_supply" in body["detail"]

    async def test_unknown_type_is_422(self, client, users, headers_for):
        resp = await client.post(
            "/assets", headers=headers_for(users["admin"]), json={**ASSET, "type": "artwork"},
        )
        assert resp.status_code == 422


class TestGatewayAuth:
    async def test_missing_api_key(self, client):
        resp = await client.get("/assets")
        assert resp.status_code == 422

    async def test_wrong_api_key(self, client):
        resp = await client.get("/assets", headers={"X-Ledger-Api-Key": "wrong"})
        assert resp.status_code == 403

    async def test_missing_user_id(self, client, gateway_headers):
        resp = await client.post("/assets", headers=gateway_headers, json=ASSET)
        assert resp.status_code == 422

    async def test_unknown_user(self, client, headers_for):
        resp = await client.post("/assets", headers=headers_for("ghost"), json=ASSET)
        assert resp.status_code == 404
        assert resp.json()["code"] == "NOT_FOUND"


class TestReadAssets:
    async def test_list_and_filter(self, client, users, headers_for, gateway_headers):
        admin = headers_for(users["admin"])
        await create_asset(client, admin)
        await create_asset(client, admin, type="loan", title="Mortgage Pool")
        resp = await client.get("/assets", headers=gateway_headers)
        assert len(resp.json()) == 2
        resp = await client.get("/assets", headers=gateway_headers, params={"type": "loan"})
        assert [a["title"] for a in resp.json()] == ["Mortgage Pool"]

    async def test_get_missing(self, client, gateway_headers):
        resp = await client.get("/assets/nope", headers=gateway_headers)
        assert resp.status_code == 404
        assert resp.json() == {
            "error": "NotFoundError",
            "code": "NOT_FOUND",
            "detail": "Asset 'nope' not found",
        }

    async def test_patch_details(self, client, users, headers_for):
        admin = headers_for(users["admin"])
        asset = await create_asset(client, admin)
        resp = await client.patch(
            f"/assets/{asset['id']}", headers=admin, json={"description": "Renovated"},
        )
        assert resp.status_code == 200
        assert resp.json()["description"] == "Renovated"
        assert resp.json()["title"] == ASSET["title"]


class TestNav:
    async def test_revise_and_history(self, client, users, headers_for, gateway_headers):
        admin = headers_for(users["admin"])
        asset = await create_asset(client, admin)
        resp = await client.post(
            f"/assets/{asset['id']}/nav", headers=admin,
            json={"nav_price": "112.40", "reason": "appraisal"},
        )
        assert resp.status_code == 200
        assert resp.json()["nav_price"] == "112.40"

        resp = await client.get(f"/assets/{asset['id']}/nav-history", headers=gateway_headers)
        history = resp.json()
        assert [h["nav_price"] for h in history] == ["112.40", "100.00"]
        assert [h["reason"] for h in history] == ["appraisal", "initial"]

    @pytest.mark.parametrize("nav", ["0", "-5"])
    async def test_non_positive_nav(self, client, users, headers_for, nav):
        admin = headers_for(users["admin"])
        asset = await create_asset(client, admin)
        resp = await client.post(f"/assets/{asset['id']}/nav", headers=admin, json={"nav_price": nav})
        assert resp.status_code == 400
