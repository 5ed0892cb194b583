"""
Product endpoint tests — CRUD, payload validation, the trimmed list view
and case-insensitive keyword search.
"""
import pytest
from httpx import AsyncClient

VALID = {"name": "Laptop", "description": "14 inch, 16 GB", "price": 1200000, "tags": ["electronics"]}


async def _create_product(client: AsyncClient, **overrides) -> dict:
    resp = await client.post("/api/products", json={**VALID, **overrides})
    assert resp.status_code == 201
    return resp.json()


# ---------------------------------------------------------------------------
# Create / get
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_and_get_product(async_client: AsyncClient):
    created = await _create_product(async_client)
    assert created["name"] == "Laptop"
    assert created["price"] == 1200000
    assert created["tags"] == ["electronics"]
    assert isinstance(created["id"], str)

    resp = await async_client.get(f"/api/products/{created['id']}")
    assert resp.status_code == 200
    assert resp.json()["description"] == "14 inch, 16 GB"


@pytest.mark.asyncio
async def test_product_with_no_tags(async_client: AsyncClient):
    created = await _create_product(async_client, tags=[])
    assert created["tags"] == []


@pytest.mark.asyncio
@pytest.mark.parametrize("overrides", [
    {"price": -1},
    {"price": "cheap"},
    {"name": ""},
    {"name": "n" * 201},
    {"description": "   "},
    {"tags": "electronics"},
])
async def test_create_product_validation(async_client: AsyncClient, overrides: dict):
    resp = await async_client.post("/api/products", json={**VALID, **overrides})
    assert resp.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize("missing", ["name", "description", "price", "tags"])
async def test_create_product_requires_every_field(async_client: AsyncClient, missing: str):
    payload = {k: v for k, v in VALID.items() if k != missing}
    resp = await async_client.post("/api/products", json=payload)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_product_not_found(async_client: AsyncClient):
    resp = await async_client.get("/api/products/99999")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Product not found"


# ---------------------------------------------------------------------------
# Update / delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_product_partial(async_client: AsyncClient):
    created = await _create_product(async_client)

    resp = await async_client.patch(
        f"/api/products/{created['id']}", json={"price": 990000, "tags": ["sale", "electronics"]}
    )
    assert resp.status_code == 200
    updated = resp.json()
    assert updated["price"] == 990000
    assert updated["tags"] == ["sale", "electronics"]
    assert updated["name"] == "Laptop"


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{}, {"price": -5}, {"tags": None}, {"name": ""}])
async def test_update_product_validation(async_client: AsyncClient, payload: dict):
    created = await _create_product(async_client)
    resp = await async_client.patch(f"/api/products/{created['id']}", json=payload)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_delete_product(async_client: AsyncClient):
    created = await _create_product(async_client)
    assert (await async_client.delete(f"/api/products/{created['id']}")).status_code == 204
    assert (await async_client.get(f"/api/products/{created['id']}")).status_code == 404
    assert (await async_client.patch(
        f"/api/products/{created['id']}", json={"price": 1}
    )).status_code == 404


# ---------------------------------------------------------------------------
# List
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_products_shape(async_client: AsyncClient):
    await _create_product(async_client)

    body = (await async_client.get("/api/products")).json()
    assert body["pageInfo"] == {"limit": 10, "hasNextPage": False, "nextCursor": None}
    [item] = body["items"]
    assert set(item) == {"id", "name", "price", "created_at"}


@pytest.mark.asyncio
async def test_list_products_keyword_ignores_case(async_client: AsyncClient):
    await _create_product(async_client, name="Mechanical KEYBOARD")
    await _create_product(async_client, name="Mouse", description="wireless, pairs with any keyboard")
    await _create_product(async_client, name="Monitor", description="27 inch")

    items = (await async_client.get("/api/products", params={"keyword": "Keyboard"})).json()["items"]
    assert sorted(p["name"] for p in items) == ["Mechanical KEYBOARD", "Mouse"]


@pytest.mark.asyncio
async def test_list_products_pages(async_client: AsyncClient):
    ids = [(await _create_product(async_client, name=f"Item {i}"))["id"] for i in range(4)]

    seen, cursor = [], None
    while True:
        params = {"limit": 3, **({"cursor": cursor} if cursor else {})}
        body = (await async_client.get("/api/products", params=params)).json()
        seen.extend(p["id"] for p in body["items"])
        cursor = body["pageInfo"]["nextCursor"]
        if not body["pageInfo"]["hasNextPage"]:
            break

    assert cursor is None
    assert seen == list(reversed(ids))
