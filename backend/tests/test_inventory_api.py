"""
Integration tests for the rewards shop API.

Tests item CRUD, redemption and access control.
"""

import pytest


@pytest.fixture
async def funded(client, admin_headers):
    await client.post("/v1/coupon/add", json={"amount": 100}, headers=admin_headers)


async def _create(client, headers, **overrides):
    payload = {"name": "Reusable Bag", "description": "Cotton tote", "cost": 10, "stock": 3}
    payload.update(overrides)
    return await client.post("/v1/inventory", json=payload, headers=headers)


@pytest.mark.asyncio
async def test_create_and_get_item(client, admin_headers):
    response = await _create(client, admin_headers)
    
    assert response.status_code == 201
    item = response.json()
    assert item["name"] == "Reusable Bag"
    assert item["isActive"] is True
    
    detail = await client.get(f"/v1/inventory/{item['id']}")
    assert detail.status_code == 200
    assert detail.json()["redemptions"] == []


@pytest.mark.asyncio
async def test_create_requires_admin(client, user_headers):
    response = await _create(client, user_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_duplicate_name(client, admin_headers):
    await _create(client, admin_headers)
    response = await _create(client, admin_headers)
    
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_INVENTORY_003"


@pytest.mark.asyncio
async def test_create_rejects_bad_cost_and_stock(client, admin_headers):
    response = await _create(client, admin_headers, cost=0)
    assert response.status_code == 400
    
    response = await _create(client, admin_headers, name="Other", stock=-1)
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_INVENTORY_005"


@pytest.mark.asyncio
async def test_list_hides_inactive_by_default(client, admin_headers):
    await _create(client, admin_headers, name="Bottle")
    await _create(client, admin_headers, name="Apron", isActive=False)
    
    active = await client.get("/v1/inventory")
    everything = await client.get("/v1/inventory", params={"activeOnly": "false"})
    
    assert [i["name"] for i in active.json()] == ["Bottle"]
    assert [i["name"] for i in everything.json()] == ["Apron", "Bottle"]


@pytest.mark.asyncio
async def test_get_missing_item(client):
    response = await client.get("/v1/inventory/404")
    
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


@pytest.mark.asyncio
async def test_update_item(client, admin_headers):
    item = (await _create(client, admin_headers)).json()
    
    response = await client.patch(
        f"/v1/inventory/{item['id']}", json={"cost": 12, "isActive": False}, headers=admin_headers
    )
    
    assert response.status_code == 200
    assert response.json()["cost"] == 12
    assert response.json()["isActive"] is False
    assert response.json()["name"] == "Reusable Bag"


@pytest.mark.asyncio
async def test_adjust_stock(client, admin_headers):
    item = (await _create(client, admin_headers)).json()
    
    up = await client.patch(
        f"/v1/inventory/{item['id']}/stock", json={"adjustment": 4}, headers=admin_headers
    )
    assert up.json()["stock"] == 7
    
    too_far = await client.patch(
        f"/v1/inventory/{item['id']}/stock", json={"adjustment": -8}, headers=admin_headers
    )
    assert too_far.status_code == 400
    assert too_far.json()["error_code"] == "ERR_INVENTORY_005"


@pytest.mark.asyncio
async def test_redeem_item(client, admin_headers, user_headers, funded):
    item = (await _create(client, admin_headers)).json()
    
    response = await client.post(
        f"/v1/inventory/{item['id']}/redeem", json={"quantity": 2, "notes": "For market"},
        headers=user_headers
    )
    
    assert response.status_code == 200
    body = response.json()
    assert body["newBalance"] == 80
    assert body["item"]["stock"] == 1
    assert body["redemption"]["totalCost"] == 20
    assert body["redemption"]["redeemedByUserId"] == 2
    assert body["transaction"]["kind"] == "CONSUME"
    assert body["transaction"]["amount"] == -20
    assert body["transaction"]["linkedRedemptionId"] == body["redemption"]["id"]
    
    balance = (await client.get("/v1/coupon/balance")).json()
    assert balance == {"balance": 80, "used": 20, "available": 80}
    
    history = await client.get("/v1/inventory/redemptions/history", headers=user_headers)
    assert history.status_code == 200
    entries = history.json()["redemptions"]
    assert len(entries) == 1
    assert entries[0]["itemName"] == "Reusable Bag"
    assert history.json()["pagination"]["total"] == 1


@pytest.mark.asyncio
async def test_redeem_requires_login(client, admin_headers, funded):
    item = (await _create(client, admin_headers)).json()
    
    response = await client.post(f"/v1/inventory/{item['id']}/redeem", json={})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_redeem_failures(client, admin_headers, user_headers):
    item = (await _create(client, admin_headers, stock=1)).json()
    
    broke = await client.post(f"/v1/inventory/{item['id']}/redeem", json={}, headers=user_headers)
    assert broke.status_code == 400
    assert broke.json()["error_code"] == "ERR_COUPON_003"
    
    await client.post("/v1/coupon/add", json={"amount": 100}, headers=admin_headers)
    
    too_many = await client.post(
        f"/v1/inventory/{item['id']}/redeem", json={"quantity": 2}, headers=user_headers
    )
    assert too_many.status_code == 400
    assert too_many.json()["error_code"] == "ERR_INVENTORY_002"
    
    missing = await client.post("/v1/inventory/999/redeem", json={}, headers=user_headers)
    assert missing.status_code == 404
    
    balance = (await client.get("/v1/coupon/balance")).json()
    assert balance["balance"] == 100


@pytest.mark.asyncio
async def test_delete_item(client, admin_headers, user_headers, funded):
    unused = (await _create(client, admin_headers, name="Unused")).json()
    redeemed = (await _create(client, admin_headers, name="Popular")).json()
    await client.post(f"/v1/inventory/{redeemed['id']}/redeem", json={}, headers=user_headers)
    
    ok = await client.delete(f"/v1/inventory/{unused['id']}", headers=admin_headers)
    assert ok.status_code == 200
    assert (await client.get(f"/v1/inventory/{unused['id']}")).status_code == 404
    
    in_use = await client.delete(f"/v1/inventory/{redeemed['id']}", headers=admin_headers)
    assert in_use.status_code == 409
    assert in_use.json()["error_code"] == "ERR_INVENTORY_004"
