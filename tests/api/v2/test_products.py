"""
Tests for the products API: catalog CRUD, archiving and product import.
"""
import pytest
from sqlalchemy import select

from app.models.audit import AuditEntry
from tests.factories import ProductFactory, ProductRowFactory


class TestProductCrud:
    @pytest.mark.asyncio
    async def test_create_with_opening_stock(self, client, manager_user, make_auth_headers):
        payload = ProductFactory(sku="LAMP-1", name="Lamp", category="home & garden", stock_level=4, min_stock=5)

        response = await client.post("/api/v2/products", json=payload, headers=make_auth_headers(manager_user))

        assert response.status_code == 201
        body = response.json()
        assert body["sku"] == "LAMP-1"
        assert body["category"] == "Home & Garden"
        assert body["stock_level"] == 4
        assert body["needs_reorder"] is True
        assert body["locations"][0]["warehouse_name"] == "Main"

    @pytest.mark.asyncio
    async def test_operator_cannot_create(self, operator_client):
        response = await operator_client.post("/api/v2/products", json=ProductFactory())
        assert response.status_code == 403
        assert response.json()["code"] == "AUTH_002"

    @pytest.mark.asyncio
    async def test_duplicate_sku_conflict(self, admin_client, widget):
        response = await admin_client.post("/api/v2/products", json=ProductFactory(sku="WID-1"))
        assert response.status_code == 409
        assert response.json()["code"] == "RES_002"

    @pytest.mark.asyncio
    async def test_list_search_and_get(self, operator_client, widget, gadget):
        listing = await operator_client.get("/api/v2/products", params={"search": "wid"})
        assert [p["sku"] for p in listing.json()] == ["WID-1"]

        single = await operator_client.get(f"/api/v2/products/{gadget.id}")
        assert single.status_code == 200
        assert single.json()["stock_level"] == 0

        missing = await operator_client.get("/api/v2/products/9999")
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_update_keeps_sku(self, admin_client, widget):
        response = await admin_client.patch(f"/api/v2/products/{widget.id}", json={"price": 12.0, "name": "Widget XL"})
        assert response.status_code == 200
        assert response.json()["price"] == 12.0
        assert response.json()["name"] == "Widget XL"
        assert response.json()["sku"] == "WID-1"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["name", "price", "cost_price", "min_stock"])
    async def test_update_rejects_null_for_required_field(self, admin_client, widget, field):
        response = await admin_client.patch(f"/api/v2/products/{widget.id}", json={field: None})
        assert response.status_code == 422
        assert response.json()["code"] == "VAL_001"

        unchanged = await admin_client.get(f"/api/v2/products/{widget.id}")
        assert unchanged.json()["name"] == "Widget"
        assert unchanged.json()["min_stock"] == 10

    @pytest.mark.asyncio
    async def test_update_unknown_product(self, admin_client):
        response = await admin_client.patch("/api/v2/products/9999", json={"price": 1.0})
        assert response.status_code == 404
        assert response.json()["code"] == "RES_001"


class TestArchive:
    @pytest.mark.asyncio
    async def test_archive_hides_from_listing(self, admin_client, widget, session_factory):
        response = await admin_client.delete(f"/api/v2/products/{widget.id}")
        assert response.status_code == 200
        assert response.json() == {"message": "Product archived", "id": widget.id}

        listing = await admin_client.get("/api/v2/products")
        assert listing.json() == []
        with_archived = await admin_client.get("/api/v2/products", params={"include_archived": True})
        assert with_archived.json()[0]["is_archived"] is True

        async with session_factory() as session:
            actions = (await session.execute(select(AuditEntry.action))).scalars().all()
        assert actions == ["PRODUCT_ARCHIVE"]

    @pytest.mark.asyncio
    async def test_manager_cannot_archive(self, client, manager_user, widget, make_auth_headers):
        response = await client.delete(f"/api/v2/products/{widget.id}", headers=make_auth_headers(manager_user))
        assert response.status_code == 403


class TestProductImport:
    @pytest.mark.asyncio
    async def test_bulk_products(self, admin_client, widget):
        rows = ProductRowFactory.create_batch(3) + [ProductRowFactory(sku="WID-1")]

        response = await admin_client.post("/api/v2/products/bulk", json=rows)

        assert response.status_code == 200
        results = response.json()["results"]
        assert results["success"] == 3
        assert results["failed"] == 1
        assert results["errors"] == ["WID-1: SKU 'WID-1' already exists"]

    @pytest.mark.asyncio
    async def test_operator_cannot_import(self, operator_client):
        response = await operator_client.post("/api/v2/products/bulk", json=[ProductRowFactory()])
        assert response.status_code == 403


class TestTemplates:
    @pytest.mark.asyncio
    async def test_list_templates(self, operator_client):
        response = await operator_client.get("/api/v2/import/templates")
        types = {t["type"]: t["upload_url"] for t in response.json()["templates"]}
        assert types == {
            "inbound": "/api/v2/inbound/bulk",
            "outbound": "/api/v2/outbound/bulk",
            "products": "/api/v2/products/bulk",
        }

    @pytest.mark.asyncio
    async def test_download_template(self, operator_client):
        response = await operator_client.get("/api/v2/import/templates/outbound")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.text.splitlines()[0] == "reference,date,warehouse,customer,sku,quantity,price"

    @pytest.mark.asyncio
    async def test_unknown_template(self, operator_client):
        response = await operator_client.get("/api/v2/import/templates/invoices")
        assert response.status_code == 400
