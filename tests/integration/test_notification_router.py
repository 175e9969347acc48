"""Integration tests for the in-app notification inbox router."""

from rwa_ledger.deps import get_dispatcher


async def _minted(client, users, headers_for):
    admin = headers_for(users["admin"])
    asset = (await client.post("/assets", headers=admin, json={
        "type": "commodity", "title": "Silver", "total_supply": 100, "nav_price": "25",
    })).json()
    for amount in (5, 7):
        await client.post("/ledger/mint", headers=admin, json={
            "asset_id": asset["id"], "user_id": users["alice"], "amount": amount,
        })
    await get_dispatcher().drain()
    return asset


class TestInbox:
    async def test_events_land_in_inbox(self, client, users, headers_for):
        await _minted(client, users, headers_for)
        alice = headers_for(users["alice"])
        items = (await client.get("/notifications", headers=alice)).json()
        assert [n["event_type"] for n in items] == ["tokens.minted", "tokens.minted"]
        assert {n["data"]["amount"] for n in items} == {5, 7}
        assert (await client.get("/notifications/unread-count", headers=alice)).json() == {"unread": 2}

    async def test_mark_read(self, client, users, headers_for):
        await _minted(client, users, headers_for)
        alice = headers_for(users["alice"])
        first = (await client.get("/notifications", headers=alice)).json()[0]
        resp = await client.post(f"/notifications/{first['id']}/read", headers=alice)
        assert resp.json()["read"] is True
        unread = (await client.get("/notifications?unread_only=true", headers=alice)).json()
        assert len(unread) == 1

    async def test_mark_all_read(self, client, users, headers_for):
        await _minted(client, users, headers_for)
        alice = headers_for(users["alice"])
        resp = await client.post("/notifications/read-all", headers=alice)
        assert resp.json() == {"unread": 0}
        assert (await client.get("/notifications/unread-count", headers=alice)).json() == {"unread": 0}

    async def test_cannot_mark_other_users(self, client, users, headers_for):
        await _minted(client, users, headers_for)
        first = (await client.get("/notifications", headers=headers_for(users["alice"]))).json()[0]
        resp = await client.post(f"/notifications/{first['id']}/read", headers=headers_for(users["bob"]))
        assert resp.status_code == 404

    async def test_failed_request_sends_nothing(self, client, users, headers_for):
        admin = headers_for(users["admin"])
        asset = (await client.post("/assets", headers=admin, json={
            "type": "commodity", "title": "Copper", "total_supply": 1, "nav_price": "1",
        })).json()
        resp = await client.post("/ledger/mint", headers=admin, json={
            "asset_id": asset["id"], "user_id": users["alice"], "amount": 2,
        })
        assert resp.status_code == 409
        await get_dispatcher().drain()
        items = (await client.get("/notifications", headers=headers_for(users["alice"]))).json()
        assert items == []
