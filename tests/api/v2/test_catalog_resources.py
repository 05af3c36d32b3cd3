"""
Tests for warehouses, suppliers, customers and the audit log endpoints.
"""
import pytest


class TestWarehouses:
    @pytest.mark.asyncio
    async def test_admin_creates_warehouse(self, admin_client):
        response = await admin_client.post("/api/v2/warehouses", json={"name": " East ", "location": "Dock 4"})
        assert response.status_code == 201
        assert response.json()["name"] == "East"

        listing = await admin_client.get("/api/v2/warehouses")
        assert [w["name"] for w in listing.json()] == ["East"]

    @pytest.mark.asyncio
    async def test_operator_cannot_create_warehouse(self, operator_client):
        response = await operator_client.post("/api/v2/warehouses", json={"name": "West"})
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_warehouse_detail_lists_held_stock(self, operator_client, widget, gadget, main_warehouse):
        await operator_client.post(
            "/api/v2/inbound",
            json={"warehouse_id": main_warehouse.id, "items": [{"product_id": widget.id, "quantity": 6}]},
        )

        response = await operator_client.get(f"/api/v2/warehouses/{main_warehouse.id}")
        body = response.json()
        assert body["total_units"] == 6
        assert [(i["sku"], i["quantity"]) for i in body["inventory"]] == [("WID-1", 6)]

    @pytest.mark.asyncio
    async def test_unknown_warehouse(self, operator_client):
        response = await operator_client.get("/api/v2/warehouses/404")
        assert response.status_code == 404


class TestParties:
    @pytest.mark.asyncio
    async def test_operator_manages_suppliers_and_customers(self, operator_client):
        supplier = await operator_client.post("/api/v2/suppliers", json={"name": "Bolt Co", "contact": "Ann"})
        customer = await operator_client.post("/api/v2/customers", json={"name": "Corner Store"})

        assert supplier.status_code == 201
        assert customer.status_code == 201

        suppliers = await operator_client.get("/api/v2/suppliers")
        customers = await operator_client.get("/api/v2/customers")
        assert [s["name"] for s in suppliers.json()] == ["Bolt Co"]
        assert [c["name"] for c in customers.json()] == ["Corner Store"]

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, operator_client):
        response = await operator_client.post("/api/v2/suppliers", json={"name": ""})
        assert response.status_code == 422


class TestAuditLog:
    @pytest.mark.asyncio
    async def test_newest_first_with_user(self, client, admin_user, widget, main_warehouse, make_auth_headers):
        headers = make_auth_headers(admin_user)
        for quantity in (1, 2):
            await client.post(
                "/api/v2/inbound",
                json={"warehouse_id": main_warehouse.id, "items": [{"product_id": widget.id, "quantity": quantity}]},
                headers=headers,
            )
        await client.post("/api/v2/customers", json={"name": "Corner Store"}, headers=headers)

        response = await client.get("/api/v2/audit", headers=headers)
        entries = response.json()
        assert [e["action"] for e in entries] == ["CUSTOMER_CREATE", "INBOUND", "INBOUND"]
        assert entries[0]["user_email"] == admin_user.email

        limited = await client.get("/api/v2/audit", params={"limit": 1, "action": "INBOUND"}, headers=headers)
        assert len(limited.json()) == 1

    @pytest.mark.asyncio
    async def test_operator_cannot_read_audit(self, operator_client):
        response = await operator_client.get("/api/v2/audit")
        assert response.status_code == 403
