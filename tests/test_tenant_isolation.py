"""
Rows of one company are invisible to every other company: lists never
include them and direct access by id answers 404, never 403.
"""

import pytest


@pytest.fixture
async def two_tenants(factory):
    home = await factory.company(name="Home Traders")
    away = await factory.company(name="Away Traders")
    return {
        "home": home,
        "away": away,
        "home_admin": await factory.user(home, "admin", is_company_admin=True),
        "away_admin": await factory.user(away, "admin", is_company_admin=True),
    }


async def test_product_lists_are_scoped(client, factory, two_tenants, headers):
    await factory.product(two_tenants["home"], name="Home Nails")
    await factory.product(two_tenants["away"], name="Away Nails")

    response = await client.get("/api/products", headers=headers(two_tenants["home_admin"]))
    assert response.status_code == 200
    names = [p["name"] for p in response.json()["products"]]
    assert names == ["Home Nails"]
    assert response.json()["total"] == 1


@pytest.mark.parametrize("method", ["get", "put", "delete"])
async def test_foreign_product_is_not_found(client, factory, two_tenants, headers, method):
    foreign = await factory.product(two_tenants["away"])
    kwargs = {"json": {"name": "Renamed"}} if method == "put" else {}
    response = await getattr(client, method)(
        f"/api/products/{foreign.id}", headers=headers(two_tenants["home_admin"]), **kwargs
    )
    assert response.status_code == 404

    survivor = await client.get(
        f"/api/products/{foreign.id}", headers=headers(two_tenants["away_admin"])
    )
    assert survivor.status_code == 200
    assert survivor.json()["name"] == foreign.name


async def test_cannot_sell_foreign_stock(client, factory, two_tenants, headers):
    foreign = await factory.product(two_tenants["away"], quantity=5)
    response = await client.post(
        "/api/sales",
        json={"items": [{"product_id": foreign.id, "quantity": 1}]},
        headers=headers(two_tenants["home_admin"]),
    )
    assert response.status_code == 404

    product = await client.get(
        f"/api/products/{foreign.id}", headers=headers(two_tenants["away_admin"])
    )
    assert product.json()["quantity"] == 5


async def test_foreign_sale_customer_and_expense_are_not_found(client, factory, two_tenants, headers):
    away = headers(two_tenants["away_admin"])
    home = headers(two_tenants["home_admin"])
    product = await factory.product(two_tenants["away"], quantity=5)

    sale = await client.post(
        "/api/sales", json={"items": [{"product_id": product.id, "quantity": 1}]}, headers=away
    )
    customer = await client.post(
        "/api/customers", json={"name": "Mary Buyer", "phone": "0711111111"}, headers=away
    )
    expense = await client.post(
        "/api/expenses", json={"description": "Rent", "amount": 250000}, headers=away
    )
    assert sale.status_code == customer.status_code == expense.status_code == 201

    assert (await client.get(f"/api/sales/{sale.json()['id']}", headers=home)).status_code == 404
    assert (await client.get(f"/api/customers/{customer.json()['id']}", headers=home)).status_code == 404
    assert (
        await client.put(f"/api/expenses/{expense.json()['id']}", json={"amount": 1}, headers=home)
    ).status_code == 404

    assert (await client.get("/api/sales", headers=home)).json()["pagination"]["total"] == 0
    assert (await client.get("/api/customers", headers=home)).json()["pagination"]["total"] == 0


async def test_foreign_user_cannot_be_managed(client, two_tenants, factory, headers):
    away_sales = await factory.user(two_tenants["away"], "sales")
    response = await client.put(
        f"/api/users/{away_sales.id}/role",
        json={"role": "manager"},
        headers=headers(two_tenants["home_admin"]),
    )
    assert response.status_code == 404


async def test_backup_contains_only_own_rows(client, factory, two_tenants, headers):
    await factory.product(two_tenants["home"], name="Home Paint")
    await factory.product(two_tenants["away"], name="Away Paint")

    response = await client.get("/api/backup/export", headers=headers(two_tenants["home_admin"]))
    assert response.status_code == 200
    assert "attachment" in response.headers["content-disposition"]
    payload = response.json()
    names = [p["name"] for p in payload["data"]["products"]]
    assert names == ["Home Paint"]
    assert all(u["company_id"] == two_tenants["home"].id for u in payload["data"]["users"])


async def test_backup_carries_own_audit_trail_and_announcements(client, factory, two_tenants, headers):
    home = headers(two_tenants["home_admin"])
    operator = headers(await factory.superadmin(email="ops@example.com"))
    doomed = await factory.product(two_tenants["home"], name="Old Stock")
    await factory.product(two_tenants["away"], name="Away Stock")
    assert (await client.delete(f"/api/products/{doomed.id}", headers=home)).status_code == 200
    for company in (two_tenants["home"], two_tenants["away"]):
        published = await client.post(
            "/api/announcements",
            json={
                "title": f"Note for {company.company_name}",
                "content": "Your plan renews next week",
                "target": "company",
                "company_id": company.id,
            },
            headers=operator,
        )
        assert published.status_code == 201
    await client.post(
        "/api/announcements", json={"title": "Everyone", "content": "Hello"}, headers=operator
    )

    data = (await client.get("/api/backup/export", headers=home)).json()["data"]
    assert [a["title"] for a in data["announcements"]] == ["Note for Home Traders"]
    actions = {entry["action"] for entry in data["audit_logs"]}
    assert "product.delete" in actions
    assert all(entry["company_id"] == two_tenants["home"].id for entry in data["audit_logs"])


@pytest.fixture
async def away_rows(client, factory, two_tenants, headers):
    """One row of each kind owned by the away company, created through the API."""
    away = headers(two_tenants["away_admin"])
    product = await factory.product(two_tenants["away"], quantity=5)
    sale = (await client.post(
        "/api/sales", json={"items": [{"product_id": product.id, "quantity": 2}]}, headers=away
    )).json()
    invoice = (await client.post(
        "/api/invoices/generate", json={"sales_order_id": sale["id"]}, headers=away
    )).json()
    sales_return = (await client.post(
        "/api/returns",
        json={"sale_id": sale["id"], "items": [{"product_id": product.id, "quantity": 1}]},
        headers=away,
    )).json()["return"]
    notification = (await client.post(
        "/api/notifications", json={"title": "Low stock", "message": "Reorder nails"}, headers=away
    )).json()
    ticket = (await client.post(
        "/api/support-tickets",
        json={"subject": "Printer", "description": "Receipts print blank"},
        headers=away,
    )).json()
    operator = await factory.superadmin(email="ops@example.com")
    announcement = (await client.post(
        "/api/announcements",
        json={
            "title": "Away only",
            "content": "Private note",
            "target": "company",
            "company_id": two_tenants["away"].id,
        },
        headers=headers(operator),
    )).json()
    return {
        "invoice": invoice["id"],
        "return": sales_return["id"],
        "notification": notification["id"],
        "ticket": ticket["id"],
        "announcement": announcement["id"],
    }


@pytest.mark.parametrize(
    "method, path, body",
    [
        ("get", "/api/invoices/{invoice}", None),
        ("put", "/api/invoices/{invoice}", {"notes": "Paid in cash"}),
        ("delete", "/api/invoices/{invoice}", None),
        ("get", "/api/returns/{return}", None),
        ("put", "/api/returns/{return}/approve", None),
        ("put", "/api/returns/{return}/reject", {"reason": "Not ours"}),
        ("delete", "/api/returns/{return}", None),
        ("put", "/api/notifications/{notification}/read", None),
        ("delete", "/api/notifications/{notification}", None),
        ("post", "/api/support-tickets/{ticket}/message", {"message": "Any update?"}),
        ("post", "/api/announcements/{announcement}/read", None),
    ],
)
async def test_foreign_rows_are_not_found(client, two_tenants, headers, away_rows, method, path, body):
    kwargs = {"json": body} if body is not None else {}
    response = await client.request(
        method.upper(), path.format(**away_rows), headers=headers(two_tenants["home_admin"]), **kwargs
    )
    assert response.status_code == 404


async def test_foreign_invoice_download_with_query_token(client, two_tenants, headers, away_rows):
    token = headers(two_tenants["home_admin"])["Authorization"].split()[1]
    response = await client.get(
        f"/api/invoices/{away_rows['invoice']}/download", params={"token": token}
    )
    assert response.status_code == 404

    away_token = headers(two_tenants["away_admin"])["Authorization"].split()[1]
    own = await client.get(
        f"/api/invoices/{away_rows['invoice']}/download", params={"token": away_token}
    )
    assert own.status_code == 200


async def test_foreign_rows_stay_untouched(client, two_tenants, headers, away_rows):
    home = headers(two_tenants["home_admin"])
    away = headers(two_tenants["away_admin"])
    await client.put(f"/api/returns/{away_rows['return']}/approve", headers=home)
    await client.delete(f"/api/invoices/{away_rows['invoice']}", headers=home)

    sales_return = await client.get(f"/api/returns/{away_rows['return']}", headers=away)
    assert sales_return.json()["status"] == "pending"
    assert (await client.get(f"/api/invoices/{away_rows['invoice']}", headers=away)).status_code == 200


async def test_foreign_lists_are_empty(client, two_tenants, headers, away_rows):
    home = headers(two_tenants["home_admin"])

    assert (await client.get("/api/invoices", headers=home)).json()["pagination"]["total"] == 0
    assert (await client.get("/api/returns", headers=home)).json()["pagination"]["total"] == 0
    assert (await client.get("/api/notifications", headers=home)).json()["total"] == 0
    assert (await client.get("/api/support-tickets/company", headers=home)).json() == []
    seen = (await client.get("/api/announcements/company", headers=home)).json()["announcements"]
    assert away_rows["announcement"] not in [a["id"] for a in seen]


async def test_audit_logs_are_scoped(client, factory, two_tenants, headers):
    home = headers(two_tenants["home_admin"])
    away = headers(two_tenants["away_admin"])
    mine = await factory.product(two_tenants["home"], name="Home Rope")
    theirs = await factory.product(two_tenants["away"], name="Away Rope")
    assert (await client.delete(f"/api/products/{mine.id}", headers=home)).status_code == 200
    assert (await client.delete(f"/api/products/{theirs.id}", headers=away)).status_code == 200

    logs = (await client.get("/api/users/audit-logs", headers=home)).json()["logs"]
    assert [entry["entity_name"] for entry in logs] == ["Home Rope"]
    assert all(entry["company_id"] == two_tenants["home"].id for entry in logs)
