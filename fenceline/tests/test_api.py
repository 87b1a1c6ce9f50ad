"""
Tests for the HTTP API.

Tests cover:
- Fence CRUD over camelCase JSON
- Delivery check endpoint
- Order creation, listing and tracking
- Delivery rules and merchant config
- Merchant identity header
"""
import pytest
from httpx import AsyncClient

from fenceline.tests.conftest import CENTER, CITY_SQUARE, MERCHANT_ID, OTHER_MERCHANT_ID, merchant_headers


def _order_body(coords=None):
    return {
        "userId": "user-42",
        "amount": "58.00",
        "recipientName": "Zhang San",
        "recipientAddress": "8 Qianmen Street",
        "recipientCoords": coords or [116.3972, 39.9091],
    }


# --- Fences ---

@pytest.mark.asyncio
async def test_create_and_get_fence(client: AsyncClient, test_merchant, test_rule):
    response = await client.post("/fences", headers=merchant_headers(), json={
        "fenceName": "Downtown",
        "fenceDesc": "Core area",
        "ruleId": test_rule["id"],
        "shapeType": "polygon",
        "coordinates": CITY_SQUARE,
    })

    assert response.status_code == 201
    data = response.json()
    assert data["fenceName"] == "Downtown"
    assert data["ruleId"] == test_rule["id"]
    assert data["shapeType"] == "polygon"
    assert len(data["coordinates"]) == 5

    response = await client.get(f"/fences/{data['id']}", headers=merchant_headers())
    assert response.status_code == 200
    assert response.json() == data


@pytest.mark.asyncio
async def test_list_fences(client: AsyncClient, circle_fence, polygon_fence):
    response = await client.get("/fences", headers=merchant_headers())

    assert response.status_code == 200
    assert [f["id"] for f in response.json()] == [circle_fence["id"], polygon_fence["id"]]


@pytest.mark.asyncio
async def test_update_fence(client: AsyncClient, circle_fence):
    response = await client.put(f"/fences/{circle_fence['id']}", headers=merchant_headers(), json={
        "fenceName": "Bigger circle",
        "shapeType": "circle",
        "coordinates": [CENTER],
        "radius": 3000,
    })

    assert response.status_code == 200
    data = response.json()
    assert data["radius"] == 3000
    assert data["ruleId"] is None


@pytest.mark.asyncio
async def test_delete_fence(client: AsyncClient, circle_fence):
    response = await client.delete(f"/fences/{circle_fence['id']}", headers=merchant_headers())
    assert response.status_code == 204

    response = await client.get(f"/fences/{circle_fence['id']}", headers=merchant_headers())
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_fence_of_other_merchant_is_not_found(client: AsyncClient, circle_fence, other_merchant):
    response = await client.delete(f"/fences/{circle_fence['id']}", headers=merchant_headers(OTHER_MERCHANT_ID))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_circle_without_radius_fails_validation(client: AsyncClient, test_merchant):
    response = await client.post("/fences", headers=merchant_headers(), json={
        "fenceName": "No radius",
        "shapeType": "circle",
        "coordinates": [CENTER],
    })
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_unknown_rule_is_rejected(client: AsyncClient, test_merchant):
    response = await client.post("/fences", headers=merchant_headers(), json={
        "fenceName": "Dangling rule",
        "ruleId": 12345,
        "shapeType": "circle",
        "coordinates": [CENTER],
        "radius": 100,
    })
    assert response.status_code == 400
    assert "12345" in response.json()["detail"]


@pytest.mark.asyncio
async def test_out_of_range_coordinates_are_rejected(client: AsyncClient, test_merchant):
    response = await client.post("/fences", headers=merchant_headers(), json={
        "fenceName": "Off the map",
        "shapeType": "polygon",
        "coordinates": [[0, 0], [0, 1], [190, 1]],
    })
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_fence_for_unregistered_merchant(client: AsyncClient, test_merchant):
    response = await client.post("/fences", headers=merchant_headers("unregistered"), json={
        "fenceName": "Orphan",
        "shapeType": "circle",
        "coordinates": [CENTER],
        "radius": 100,
    })
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_merchant_header_is_required(client: AsyncClient):
    response = await client.get("/fences")
    assert response.status_code == 422


# --- Delivery check ---

@pytest.mark.asyncio
async def test_check_delivery_inside(client: AsyncClient, circle_fence, test_rule):
    response = await client.get(
        "/orders/check-delivery",
        params={"lng": CENTER[0], "lat": CENTER[1]},
        headers=merchant_headers(),
    )

    assert response.status_code == 200
    assert response.json() == {
        "isDeliverable": True,
        "ruleId": test_rule["id"],
        "message": "Address is within delivery range.",
    }


@pytest.mark.asyncio
async def test_check_delivery_outside(client: AsyncClient, circle_fence):
    response = await client.get(
        "/orders/check-delivery",
        params={"lng": 121.47, "lat": 31.23},
        headers=merchant_headers(),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["isDeliverable"] is False
    assert data["ruleId"] is None


@pytest.mark.asyncio
async def test_check_delivery_invalid_point(client: AsyncClient, circle_fence):
    response = await client.get(
        "/orders/check-delivery",
        params={"lng": 0, "lat": 95},
        headers=merchant_headers(),
    )
    assert response.status_code == 400


# --- Orders ---

@pytest.mark.asyncio
async def test_create_order(client: AsyncClient, circle_fence, test_rule):
    response = await client.post("/orders", headers=merchant_headers(), json=_order_body())

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "pending"
    assert data["ruleId"] == test_rule["id"]
    assert data["recipientCoords"] == [116.3972, 39.9091]
    assert data["amount"] == 58.0

    response = await client.get(f"/orders/{data['id']}", headers=merchant_headers())
    assert response.status_code == 200
    assert response.json()["id"] == data["id"]


@pytest.mark.asyncio
async def test_create_order_out_of_range(client: AsyncClient, circle_fence):
    response = await client.post("/orders", headers=merchant_headers(), json=_order_body([121.47, 31.23]))

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["error_code"] == "DELIVERY_OUT_OF_RANGE"


@pytest.mark.asyncio
async def test_list_orders(client: AsyncClient, circle_fence):
    for amount in ("30.00", "10.00", "20.00"):
        body = _order_body()
        body["amount"] = amount
        response = await client.post("/orders", headers=merchant_headers(), json=body)
        assert response.status_code == 201

    response = await client.get(
        "/orders",
        params={"page": 1, "pageSize": 2, "sortBy": "amount", "sortDirection": "asc"},
        headers=merchant_headers(),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["totalCount"] == 3
    assert data["currentPage"] == 1
    assert data["pageSize"] == 2
    assert [o["amount"] for o in data["orders"]] == [10.0, 20.0]


@pytest.mark.asyncio
async def test_list_orders_invalid_sort(client: AsyncClient, test_merchant):
    response = await client.get("/orders", params={"sortBy": "totalPrice"}, headers=merchant_headers())

    assert response.status_code == 400
    assert "totalPrice" in response.json()["detail"]


@pytest.mark.asyncio
async def test_list_orders_invalid_page_size(client: AsyncClient, test_merchant):
    response = await client.get("/orders", params={"pageSize": 500}, headers=merchant_headers())
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_orders_huge_page(client: AsyncClient, test_merchant):
    response = await client.get("/orders", params={"page": 10**19}, headers=merchant_headers())
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_order_tracking_flow(client: AsyncClient, test_order):
    order_id = test_order["id"]

    response = await client.post(f"/orders/{order_id}/status", headers=merchant_headers(), json={"status": "pickedUp"})
    assert response.status_code == 200
    assert response.json()["status"] == "pickedUp"

    response = await client.post(
        f"/orders/{order_id}/position",
        headers=merchant_headers(),
        json={"coordinates": [116.39, 39.91]},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["currentPosition"] == [116.39, 39.91]
    assert data["routePath"] == [[116.39, 39.91]]

    response = await client.post(f"/orders/{order_id}/abnormal", headers=merchant_headers(), json={"reason": "Late"})
    assert response.status_code == 200
    assert response.json()["isAbnormal"] is True


@pytest.mark.asyncio
async def test_illegal_status_change(client: AsyncClient, test_order):
    response = await client.post(
        f"/orders/{test_order['id']}/status",
        headers=merchant_headers(),
        json={"status": "delivered"},
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_missing_order(client: AsyncClient, test_merchant):
    response = await client.get("/orders/does-not-exist", headers=merchant_headers())
    assert response.status_code == 404


# --- Rules and merchant ---

@pytest.mark.asyncio
async def test_delivery_rules_are_cached(client: AsyncClient, test_rule, second_rule, mock_cache):
    response = await client.get("/delivery-rules")

    assert response.status_code == 200
    assert [r["name"] for r in response.json()] == ["Same day", "Next day"]
    assert len(await mock_cache.get_rules()) == 2

    response = await client.post("/delivery-rules", json={"name": "Weekend", "logic": 5})
    assert response.status_code == 201
    assert await mock_cache.get_rules() is None

    response = await client.get("/delivery-rules")
    assert len(response.json()) == 3


@pytest.mark.asyncio
async def test_merchant_config(client: AsyncClient, test_merchant):
    response = await client.get("/merchant/config", headers=merchant_headers())

    assert response.status_code == 200
    assert response.json() == {"merchantId": MERCHANT_ID, "location": CENTER}


@pytest.mark.asyncio
async def test_merchant_config_without_location(client: AsyncClient, other_merchant):
    response = await client.get("/merchant/config", headers=merchant_headers(OTHER_MERCHANT_ID))
    assert response.json()["location"] == [0.0, 0.0]


@pytest.mark.asyncio
async def test_unknown_merchant_config(client: AsyncClient, test_merchant):
    response = await client.get("/merchant/config", headers=merchant_headers("nobody"))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_metrics_endpoint(client: AsyncClient):
    response = await client.get("/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text


@pytest.mark.asyncio
async def test_storage_fault_is_opaque_500(client: AsyncClient, test_merchant, monkeypatch):
    from sqlalchemy.exc import OperationalError
    from fenceline.app.services.fences import FenceService

    async def broken(self, merchant_id):
        raise OperationalError("SELECT 1", {}, Exception("connection lost"))

    monkeypatch.setattr(FenceService, "list_fences", broken)
    response = await client.get("/fences", headers=merchant_headers())

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
