"""
Sales orders, returns and invoices against live stock.
"""

import asyncio

import pytest


async def stock_of(client, product_id, hdrs):
    response = await client.get(f"/api/products/{product_id}", headers=hdrs)
    assert response.status_code == 200
    return response.json()["quantity"]


async def sell(client, hdrs, *lines, **extra):
    items = [{"product_id": pid, "quantity": qty} for pid, qty in lines]
    return await client.post("/api/sales", json={"items": items, **extra}, headers=hdrs)


class TestCreateSale:

    async def test_selling_exactly_the_stock_on_hand(self, client, factory, tenant, headers):
        hdrs = headers(tenant["sales"])
        product = await factory.product(tenant["company"], quantity=5, price=2000, cost_price=1500)

        response = await sell(client, hdrs, (product.id, 5))
        assert response.status_code == 201
        sale = response.json()
        assert sale["sale_number"].startswith("SALE-")
        assert sale["total_amount"] == 10000
        assert sale["total_profit"] == 2500
        assert sale["status"] == "completed"
        assert sale["items"][0]["product_name"] == product.name
        assert await stock_of(client, product.id, hdrs) == 0

        history = await client.get(f"/api/products/{product.id}/stock-history", headers=hdrs)
        movements = history.json()
        assert [(m["transaction_type"], m["quantity"]) for m in movements] == [("sale", -5)]
        assert movements[0]["reference_id"] == sale["id"]

    async def test_overselling_leaves_no_trace(self, client, factory, tenant, headers):
        hdrs = headers(tenant["sales"])
        product = await factory.product(tenant["company"], quantity=3)

        response = await sell(client, hdrs, (product.id, 4))
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "insufficient_stock"
        assert body["product_id"] == product.id
        assert "Available: 3 units" in body["detail"]

        assert await stock_of(client, product.id, hdrs) == 3
        listing = await client.get("/api/sales", headers=hdrs)
        assert listing.json()["pagination"]["total"] == 0

    async def test_one_short_line_fails_the_whole_order(self, client, factory, tenant, headers):
        hdrs = headers(tenant["sales"])
        plenty = await factory.product(tenant["company"], quantity=50)
        scarce = await factory.product(tenant["company"], quantity=1)

        response = await sell(client, hdrs, (plenty.id, 10), (scarce.id, 2))
        assert response.status_code == 400
        assert await stock_of(client, plenty.id, hdrs) == 50
        assert await stock_of(client, scarce.id, hdrs) == 1

    async def test_repeated_product_lines_are_checked_together(self, client, factory, tenant, headers):
        hdrs = headers(tenant["sales"])
        product = await factory.product(tenant["company"], quantity=4)

        response = await sell(client, hdrs, (product.id, 3), (product.id, 2))
        assert response.status_code == 400
        assert await stock_of(client, product.id, hdrs) == 4

    async def test_concurrent_sales_cannot_oversell(self, client, factory, tenant, headers):
        hdrs = headers(tenant["sales"])
        product = await factory.product(tenant["company"], quantity=5)

        responses = await asyncio.gather(
            sell(client, hdrs, (product.id, 3)),
            sell(client, hdrs, (product.id, 3)),
        )
        assert sorted(r.status_code for r in responses) == [201, 400]
        assert await stock_of(client, product.id, hdrs) == 2
        listing = await client.get("/api/sales", headers=hdrs)
        assert listing.json()["pagination"]["total"] == 1

    async def test_unknown_product(self, client, tenant, headers):
        response = await sell(client, headers(tenant["sales"]), ("no-such-product", 1))
        assert response.status_code == 404

    async def test_usd_prices_are_converted(self, client, factory, tenant, headers):
        product = await factory.product(tenant["company"], quantity=10, price=7400, cost_price=3700)
        response = await sell(client, headers(tenant["sales"]), (product.id, 2), currency="USD")
        assert response.status_code == 201
        sale = response.json()
        assert sale["exchange_rate"] == 3700
        assert sale["items"][0]["unit_price"] == 2.0
        assert sale["total_amount"] == 4.0
        assert sale["total_profit"] == 2.0

    async def test_custom_price(self, client, factory, tenant, headers):
        product = await factory.product(tenant["company"], quantity=10, price=1000)
        response = await client.post(
            "/api/sales",
            json={"items": [{"product_id": product.id, "quantity": 2, "custom_price": 800}]},
            headers=headers(tenant["sales"]),
        )
        item = response.json()["items"][0]
        assert item["unit_price"] == 800
        assert item["custom_price_used"] is True

    async def test_named_customer_is_registered_once(self, client, factory, tenant, headers):
        hdrs = headers(tenant["sales"])
        product = await factory.product(tenant["company"], quantity=10)
        first = await sell(client, hdrs, (product.id, 1), customer_name="Peter Okello", customer_phone="0772000000")
        second = await sell(client, hdrs, (product.id, 1), customer_name="Peter Okello", customer_phone="0772000000")
        assert first.json()["customer_id"] == second.json()["customer_id"] is not None

        customers = await client.get("/api/customers", headers=hdrs)
        assert customers.json()["pagination"]["total"] == 1


class TestUpdateAndDelete:

    async def test_update_records_history(self, client, factory, tenant, headers):
        hdrs = headers(tenant["sales"])
        product = await factory.product(tenant["company"])
        sale = (await sell(client, hdrs, (product.id, 1))).json()

        response = await client.put(
            f"/api/sales/{sale['id']}", json={"status": "pending", "customer_name": "Walk In"}, headers=hdrs
        )
        assert response.status_code == 200
        order = response.json()["order"]
        assert order["status"] == "pending"
        changes = order["edit_history"][0]["changes"]
        assert {c["field"] for c in changes} == {"status", "customer_name"}

    async def test_delete_puts_stock_back(self, client, factory, tenant, headers):
        product = await factory.product(tenant["company"], quantity=10)
        sale = (await sell(client, headers(tenant["sales"]), (product.id, 4))).json()

        refused = await client.delete(f"/api/sales/{sale['id']}", headers=headers(tenant["manager"]))
        assert refused.status_code == 403

        admin = headers(tenant["admin"])
        response = await client.delete(f"/api/sales/{sale['id']}", headers=admin)
        assert response.status_code == 200
        assert await stock_of(client, product.id, admin) == 10
        assert (await client.get(f"/api/sales/{sale['id']}", headers=admin)).status_code == 404

    async def test_receipt_download_accepts_query_token(self, client, factory, tenant, headers):
        hdrs = headers(tenant["sales"])
        product = await factory.product(tenant["company"], name="Wood Glue")
        sale = (await sell(client, hdrs, (product.id, 1))).json()
        token = hdrs["Authorization"].split()[1]

        response = await client.get(f"/api/sales/{sale['id']}/download", params={"token": token})
        assert response.status_code == 200
        assert sale["sale_number"] in response.text
        assert "Wood Glue" in response.text
        assert response.headers["content-disposition"].startswith("attachment")


@pytest.fixture
async def sold(client, factory, tenant, headers):
    """A sale of 3 units of a product that had 10 in stock."""
    product = await factory.product(tenant["company"], quantity=10, price=1000, cost_price=600)
    sale = (await sell(client, headers(tenant["sales"]), (product.id, 3))).json()
    return {"product": product, "sale": sale}


class TestReturns:

    async def create(self, client, hdrs, sale, product_id, quantity):
        return await client.post(
            "/api/returns",
            json={
                "sale_id": sale["id"],
                "items": [{"product_id": product_id, "quantity": quantity}],
                "reason": "Damaged",
            },
            headers=hdrs,
        )

    async def test_approval_restores_stock_and_reduces_sale(self, client, tenant, headers, sold):
        manager = headers(tenant["manager"])
        created = await self.create(client, headers(tenant["sales"]), sold["sale"], sold["product"].id, 2)
        assert created.status_code == 201
        sales_return = created.json()["return"]
        assert sales_return["status"] == "pending"
        assert sales_return["total_refund"] == 2000
        assert await stock_of(client, sold["product"].id, manager) == 7

        approved = await client.put(f"/api/returns/{sales_return['id']}/approve", headers=manager)
        assert approved.status_code == 200
        assert approved.json()["return"]["status"] == "approved"
        assert await stock_of(client, sold["product"].id, manager) == 9

        sale = (await client.get(f"/api/sales/{sold['sale']['id']}", headers=manager)).json()
        assert sale["total_amount"] == 1000
        assert sale["total_refunded"] == 2000
        assert sale["total_profit"] == 400
        assert sale["has_returns"] is True
        assert sale["items"][0]["returned_quantity"] == 2
        assert sale["status"] == "completed"

    async def test_line_totals_follow_approved_returns(self, client, tenant, headers, sold):
        manager = headers(tenant["manager"])
        created = (await self.create(client, manager, sold["sale"], sold["product"].id, 1)).json()["return"]
        await client.put(f"/api/returns/{created['id']}/approve", headers=manager)

        sale = (await client.get(f"/api/sales/{sold['sale']['id']}", headers=manager)).json()
        assert sale["items"][0]["item_total"] == 2000
        assert sale["items"][0]["item_profit"] == 800
        assert sum(i["item_total"] for i in sale["items"]) == sale["total_amount"]
        assert sum(i["item_profit"] for i in sale["items"]) == sale["total_profit"]

        receipt = await client.get(f"/api/sales/{sold['sale']['id']}/download", headers=manager)
        assert "1 of 3 returned" in receipt.text
        assert "2,000.00" in receipt.text

    async def test_returning_everything_marks_sale_refunded(self, client, tenant, headers, sold):
        manager = headers(tenant["manager"])
        created = await self.create(client, manager, sold["sale"], sold["product"].id, 3)
        await client.put(f"/api/returns/{created.json()['return']['id']}/approve", headers=manager)
        sale = (await client.get(f"/api/sales/{sold['sale']['id']}", headers=manager)).json()
        assert sale["status"] == "refunded"

    async def test_cannot_return_more_than_sold(self, client, tenant, headers, sold):
        response = await self.create(client, headers(tenant["sales"]), sold["sale"], sold["product"].id, 4)
        assert response.status_code == 400

    async def test_second_approval_is_rechecked(self, client, tenant, headers, sold):
        manager = headers(tenant["manager"])
        first = (await self.create(client, manager, sold["sale"], sold["product"].id, 2)).json()["return"]
        second = (await self.create(client, manager, sold["sale"], sold["product"].id, 2)).json()["return"]

        assert (await client.put(f"/api/returns/{first['id']}/approve", headers=manager)).status_code == 200
        again = await client.put(f"/api/returns/{second['id']}/approve", headers=manager)
        assert again.status_code == 400
        assert await stock_of(client, sold["product"].id, manager) == 9

    async def test_reject(self, client, tenant, headers, sold):
        manager = headers(tenant["manager"])
        created = (await self.create(client, manager, sold["sale"], sold["product"].id, 1)).json()["return"]

        rejected = await client.put(
            f"/api/returns/{created['id']}/reject", json={"reason": "Outside return window"}, headers=manager
        )
        assert rejected.status_code == 200
        assert rejected.json()["return"]["rejection_reason"] == "Outside return window"
        assert await stock_of(client, sold["product"].id, manager) == 7

        twice = await client.put(f"/api/returns/{created['id']}/approve", headers=manager)
        assert twice.status_code == 400

    async def test_sales_role_cannot_approve(self, client, tenant, headers, sold):
        sales = headers(tenant["sales"])
        created = (await self.create(client, sales, sold["sale"], sold["product"].id, 1)).json()["return"]
        response = await client.put(f"/api/returns/{created['id']}/approve", headers=sales)
        assert response.status_code == 403


class TestInvoices:

    async def test_invoice_from_sale_does_not_move_stock(self, client, tenant, headers, sold):
        hdrs = headers(tenant["sales"])
        response = await client.post(
            "/api/invoices/generate",
            json={"sales_order_id": sold["sale"]["id"], "tax": 300, "discount": 100},
            headers=hdrs,
        )
        assert response.status_code == 201
        invoice = response.json()
        assert invoice["invoice_number"].startswith("INV-")
        assert invoice["subtotal"] == 3000
        assert invoice["total_amount"] == 3200
        assert invoice["sale_id"] == sold["sale"]["id"]
        assert await stock_of(client, sold["product"].id, hdrs) == 7

    async def test_invoice_from_items(self, client, factory, tenant, headers):
        hdrs = headers(tenant["sales"])
        product = await factory.product(tenant["company"], quantity=1, price=2500)
        response = await client.post(
            "/api/invoices/generate",
            json={"items": [{"product_id": product.id, "quantity": 4}]},
            headers=hdrs,
        )
        assert response.status_code == 201
        assert response.json()["subtotal"] == 10000
        assert await stock_of(client, product.id, hdrs) == 1

    async def test_invoice_needs_a_source(self, client, tenant, headers):
        response = await client.post("/api/invoices/generate", json={}, headers=headers(tenant["sales"]))
        assert response.status_code == 400

    async def test_discount_cannot_exceed_total(self, client, tenant, headers, sold):
        response = await client.post(
            "/api/invoices/generate",
            json={"sales_order_id": sold["sale"]["id"], "discount": 5000},
            headers=headers(tenant["sales"]),
        )
        assert response.status_code == 400

    async def test_only_admin_deletes(self, client, tenant, headers, sold):
        invoice = (
            await client.post(
                "/api/invoices/generate",
                json={"sales_order_id": sold["sale"]["id"]},
                headers=headers(tenant["sales"]),
            )
        ).json()
        assert (
            await client.delete(f"/api/invoices/{invoice['id']}", headers=headers(tenant["manager"]))
        ).status_code == 403
        assert (
            await client.delete(f"/api/invoices/{invoice['id']}", headers=headers(tenant["admin"]))
        ).status_code == 200
