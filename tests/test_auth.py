"""
Company sign-up, tenant login and the per-request re-validation of the
caller's user and company rows.
"""

from datetime import timedelta

from sqlalchemy import select

from bizdesk.core.security import create_access_token
from bizdesk.db.base import utcnow
from bizdesk.models import AuditLog, Company, CompanyStatus

REGISTRATION = {
    "companyName": "Kampala Hardware",
    "businessType": "hardware",
    "phone": "0700000000",
    "currency": "ugx",
    "adminname": "Jane Owner",
    "adminEmail": "Jane@Example.com",
    "adminPassword": "Hammer2024",
}


async def login(client, email, password="Secret123", **extra):
    return await client.post("/api/auth/login", json={"username": email, "password": password, **extra})


class TestCompanyRegistration:

    async def test_new_company_waits_for_approval(self, client):
        response = await client.post("/api/company/register", json=REGISTRATION)
        assert response.status_code == 201
        body = response.json()
        assert body["company"]["status"] == "pending_approval"
        assert body["company"]["currency"] == "UGX"
        assert body["company"]["database_type"] == "shared"
        assert body["company"]["subscription_tier"] == "standard"
        assert body["user"]["role"] == "admin"
        assert body["user"]["is_company_admin"] is True
        assert body["user"]["email"] == "jane@example.com"
        assert "hashed_password" not in body["user"]

        refused = await login(client, "jane@example.com", "Hammer2024")
        assert refused.status_code == 403
        assert refused.json()["code"] == "pending_approval"

    async def test_company_names_are_unique_ignoring_case(self, client, factory):
        await factory.company(name="KAMPALA HARDWARE")
        response = await client.post("/api/company/register", json=REGISTRATION)
        assert response.status_code == 409

    async def test_weak_admin_password_is_refused(self, client):
        response = await client.post(
            "/api/company/register", json={**REGISTRATION, "adminPassword": "abcdefghij"}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Password must contain at least one number"


class TestLogin:

    async def test_success_returns_token_and_company(self, client, tenant):
        response = await login(client, tenant["admin"].email.upper())
        assert response.status_code == 200
        body = response.json()
        assert body["token"]
        assert body["user"]["id"] == tenant["admin"].id
        assert body["company"]["id"] == tenant["company"].id

        me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
        assert me.status_code == 200
        assert me.json()["email"] == tenant["admin"].email

    async def test_form_login(self, client, tenant):
        response = await client.post(
            "/api/auth/login",
            data={"username": tenant["sales"].email, "password": "Secret123"},
        )
        assert response.status_code == 200

    async def test_form_login_finds_company_with_escaped_name(self, client):
        registered = await client.post(
            "/api/company/register", json={**REGISTRATION, "companyName": "Joe's Shop"}
        )
        assert registered.json()["company"]["company_name"] == "Joe&#x27;s Shop"
        credentials = {"username": "jane@example.com", "password": "Hammer2024", "companyName": "Joe's Shop"}

        as_json = await client.post("/api/auth/login", json=credentials)
        as_form = await client.post("/api/auth/login", data=credentials)
        assert as_json.json()["code"] == "pending_approval"
        assert as_form.status_code == 403
        assert as_form.json()["code"] == "pending_approval"

    async def test_unknown_email(self, client, tenant):
        response = await login(client, "nobody@example.com")
        assert response.status_code == 401
        assert response.json()["detail"] == (
            "Email not found. Please check your credentials and try again."
        )

    async def test_wrong_password(self, client, tenant):
        response = await login(client, tenant["admin"].email, "Wrong1234")
        assert response.status_code == 401
        assert response.json()["detail"] == "Incorrect password. Please try again."

    async def test_missing_fields(self, client):
        response = await client.post("/api/auth/login", json={"username": "a@example.com"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Email and password are required"

    async def test_same_email_in_two_companies_uses_company_name(self, client, factory):
        first = await factory.company(name="North Shop")
        second = await factory.company(name="South Shop")
        await factory.user(first, "admin", email="shared@example.com")
        other = await factory.user(second, "sales", email="shared@example.com")

        response = await login(client, "shared@example.com", companyName="south shop")
        assert response.status_code == 200
        assert response.json()["user"]["id"] == other.id

    async def test_blocked_company(self, client, factory):
        company = await factory.company(status=CompanyStatus.blocked.value, status_reason="Fraud")
        user = await factory.user(company, "admin")
        response = await login(client, user.email)
        assert response.status_code == 403
        assert response.json()["code"] == "account_blocked"
        assert response.json()["reason"] == "Fraud"


class TestSuspensionExpiry:

    async def test_lapsed_suspension_is_lifted_at_login(self, client, factory, session):
        company = await factory.company(
            status=CompanyStatus.suspended.value,
            status_reason="Late payment",
            suspended_until=utcnow() - timedelta(hours=1),
        )
        user = await factory.user(company, "admin")

        response = await login(client, user.email)
        assert response.status_code == 200
        assert response.json()["company"]["status"] == "active"

        refreshed = await session.get(Company, company.id)
        assert refreshed.status == "active"
        assert refreshed.suspended_until is None
        logs = (await session.execute(
            select(AuditLog).where(AuditLog.action == "company.suspension_expired")
        )).scalars().all()
        assert len(logs) == 1
        assert logs[0].company_id == company.id

    async def test_future_suspension_still_refuses(self, client, factory):
        company = await factory.company(
            status=CompanyStatus.suspended.value,
            suspended_until=utcnow() + timedelta(days=3),
        )
        user = await factory.user(company, "admin")

        response = await login(client, user.email)
        assert response.status_code == 403
        body = response.json()
        assert body["code"] == "account_suspended"
        assert body["suspended_until"]


class TestTokenChecks:

    async def test_no_token(self, client):
        response = await client.get("/api/products")
        assert response.status_code == 401
        assert response.json()["detail"] == "No token provided"

    async def test_garbage_token(self, client):
        response = await client.get("/api/products", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid token"

    async def test_expired_token(self, client, tenant):
        user = tenant["admin"]
        token = create_access_token(
            user.id, user.company_id, user.role, expires_delta=timedelta(seconds=-1)
        )
        response = await client.get("/api/products", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["code"] == "TOKEN_EXPIRED"

    async def test_role_change_applies_to_existing_token(self, client, tenant, headers):
        manager_headers = headers(tenant["manager"])
        product = {"name": "Tape Measure", "sku": "TM-1", "price": 5000, "quantity": 3}
        assert (await client.post("/api/products", json=product, headers=manager_headers)).status_code == 201

        demoted = await client.put(
            f"/api/users/{tenant['manager'].id}/role",
            json={"role": "sales"},
            headers=headers(tenant["admin"]),
        )
        assert demoted.status_code == 200

        again = await client.post(
            "/api/products", json={**product, "sku": "TM-2"}, headers=manager_headers
        )
        assert again.status_code == 403

    async def test_company_status_change_applies_to_existing_token(
        self, client, tenant, headers, factory
    ):
        operator = await factory.superadmin()
        sales_headers = headers(tenant["sales"])
        assert (await client.get("/api/products", headers=sales_headers)).status_code == 200

        blocked = await client.post(
            f"/api/superadmin/companies/{tenant['company'].id}/block",
            json={"reason": "Chargebacks"},
            headers=headers(operator),
        )
        assert blocked.status_code == 200

        response = await client.get("/api/products", headers=sales_headers)
        assert response.status_code == 403
        assert response.json()["code"] == "account_blocked"

    async def test_deleted_user_token_is_refused(self, client, tenant, headers):
        sales_headers = headers(tenant["sales"])
        deleted = await client.delete(
            f"/api/users/{tenant['sales'].id}", headers=headers(tenant["admin"])
        )
        assert deleted.status_code == 200
        response = await client.get("/api/auth/me", headers=sales_headers)
        assert response.status_code == 401


async def test_join_existing_company(client, tenant):
    response = await client.post(
        "/api/auth/register",
        json={
            "name": "New Seller",
            "email": "seller@example.com",
            "password": "Seller2024",
            "company_id": tenant["company"].id,
        },
    )
    assert response.status_code == 201
    assert response.json()["user"]["role"] == "sales"

    duplicate = await client.post(
        "/api/auth/register",
        json={
            "name": "New Seller",
            "email": "SELLER@example.com",
            "password": "Seller2024",
            "company_id": tenant["company"].id,
        },
    )
    assert duplicate.status_code == 409
