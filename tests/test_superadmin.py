"""
Super-admin console: token scope, company lifecycle and platform views.
"""

import pytest

from bizdesk.core.exceptions import ValidationFailed
from bizdesk.models import CompanyStatus
from bizdesk.services.company_admin_service import TRANSITIONS, check_transition


@pytest.fixture
async def operator(factory):
    return await factory.superadmin(email="ops@example.com")


class TestTransitions:

    @pytest.mark.parametrize(
        "action, current, target",
        [
            ("approve", "pending_approval", "active"),
            ("reject", "pending_approval", "rejected"),
            ("suspend", "active", "suspended"),
            ("block", "suspended", "blocked"),
            ("ban", "blocked", "banned"),
            ("reactivate", "suspended", "active"),
            ("reactivate", "blocked", "active"),
        ],
    )
    def test_allowed(self, action, current, target):
        assert check_transition(action, current, reason="Policy").target == target

    @pytest.mark.parametrize(
        "action, current",
        [
            ("approve", "active"),
            ("suspend", "pending_approval"),
            ("reactivate", "banned"),
            ("reactivate", "rejected"),
            ("approve", "rejected"),
        ],
    )
    def test_refused(self, action, current):
        with pytest.raises(ValidationFailed) as info:
            check_transition(action, current, reason="Policy")
        assert info.value.code == "invalid_transition"

    def test_terminal_states_have_no_exit(self):
        for transition in TRANSITIONS.values():
            assert "banned" not in transition.sources
            assert "rejected" not in transition.sources

    def test_reason_required(self):
        with pytest.raises(ValidationFailed):
            check_transition("ban", "active", reason="  ")

    def test_unknown_action(self):
        with pytest.raises(ValidationFailed):
            check_transition("archive", "active")


class TestScope:

    async def test_tenant_admin_token_is_refused(self, client, tenant, headers):
        response = await client.get("/api/superadmin/companies", headers=headers(tenant["admin"]))
        assert response.status_code == 403
        assert response.json()["detail"] == "Access denied. Super admin privileges required."

    async def test_superadmin_token_is_not_a_tenant_token(self, client, operator, headers):
        response = await client.get("/api/products", headers=headers(operator))
        assert response.status_code == 401

    async def test_inactive_operator(self, client, factory, headers):
        retired = await factory.superadmin(is_active=False)
        response = await client.get("/api/superadmin/me", headers=headers(retired))
        assert response.status_code == 401

    async def test_login(self, client, operator):
        response = await client.post(
            "/api/superadmin/login", json={"email": "OPS@example.com", "password": "Secret123"}
        )
        assert response.status_code == 200
        token = response.json()["token"]
        me = await client.get("/api/superadmin/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["email"] == "ops@example.com"

        wrong = await client.post(
            "/api/superadmin/login", json={"email": "ops@example.com", "password": "Wrong1234"}
        )
        assert wrong.status_code == 401


class TestCompanyLifecycle:

    async def test_approval_unlocks_login(self, client, factory, operator, headers):
        company = await factory.company(status=CompanyStatus.pending_approval.value)
        user = await factory.user(company, "admin", is_company_admin=True)
        ops = headers(operator)

        pending = await client.get("/api/superadmin/pending-companies", headers=ops)
        assert pending.json()["count"] == 1

        approved = await client.post(f"/api/superadmin/companies/{company.id}/approve", headers=ops)
        assert approved.status_code == 200
        assert approved.json()["company"]["status"] == "active"
        assert approved.json()["message"] == "Company approved successfully"

        login = await client.post(
            "/api/auth/login", json={"username": user.email, "password": "Secret123"}
        )
        assert login.status_code == 200

        logs = await client.get(
            "/api/superadmin/audit-logs", params={"action": "company.approve"}, headers=ops
        )
        entries = logs.json()["logs"]
        assert len(entries) == 1
        assert entries[0]["entity_id"] == company.id

    async def test_invalid_transition_is_400(self, client, factory, operator, headers):
        company = await factory.company(status=CompanyStatus.banned.value)
        response = await client.post(
            f"/api/superadmin/companies/{company.id}/reactivate", headers=headers(operator)
        )
        assert response.status_code == 400

    async def test_timed_suspension(self, client, factory, operator, headers):
        company = await factory.company()
        response = await client.post(
            f"/api/superadmin/companies/{company.id}/suspend",
            json={"reason": "Unpaid invoice", "duration_days": 7},
            headers=headers(operator),
        )
        assert response.status_code == 200
        body = response.json()["company"]
        assert body["status"] == "suspended"
        assert body["suspended_until"] is not None
        assert body["status_reason"] == "Unpaid invoice"

    async def test_delete_company_removes_tenant_rows(self, client, factory, tenant, operator, headers):
        other = await factory.company(name="Bystander Ltd")
        await factory.product(tenant["company"])
        keeper = await factory.product(other)
        ops = headers(operator)

        response = await client.delete(f"/api/superadmin/companies/{tenant['company'].id}", headers=ops)
        assert response.status_code == 200
        removed = response.json()["removed"]
        assert removed["products"] == 1
        assert removed["users"] == 3

        listing = await client.get("/api/superadmin/companies", headers=ops)
        ids = [c["id"] for c in listing.json()["companies"]]
        assert tenant["company"].id not in ids
        assert other.id in ids

        profile = await client.get(f"/api/superadmin/companies/{other.id}/profile", headers=ops)
        assert profile.json()["statistics"]["productCount"] == 1
        assert keeper.company_id == other.id

    async def test_profile(self, client, tenant, operator, headers):
        response = await client.get(
            f"/api/superadmin/companies/{tenant['company'].id}/profile", headers=headers(operator)
        )
        assert response.status_code == 200
        body = response.json()
        assert body["admin"]["id"] == tenant["admin"].id
        assert body["statistics"]["userCount"] == 3


class TestPlatformViews:

    async def test_all_users_spans_companies(self, client, factory, tenant, operator, headers):
        other = await factory.company(name="Second Shop")
        await factory.user(other, "sales")
        response = await client.get("/api/superadmin/all-users", headers=headers(operator))
        assert response.status_code == 200
        assert response.json()["pagination"]["total"] == 4
        names = {u["company_name"] for u in response.json()["users"]}
        assert names == {tenant["company"].company_name, "Second Shop"}

    async def test_statistics(self, client, tenant, operator, headers):
        response = await client.get("/api/superadmin/statistics", headers=headers(operator))
        assert response.status_code == 200
        assert "statistics" in response.json()

    async def test_company_admin_cannot_be_deleted_from_console(self, client, tenant, operator, headers):
        response = await client.delete(
            f"/api/superadmin/users/{tenant['admin'].id}", headers=headers(operator)
        )
        assert response.status_code == 400
        removed = await client.delete(
            f"/api/superadmin/users/{tenant['sales'].id}", headers=headers(operator)
        )
        assert removed.status_code == 200


async def test_announcement_reaches_tenants(client, tenant, operator, headers):
    created = await client.post(
        "/api/announcements",
        json={"title": "Maintenance tonight", "content": "The platform restarts at midnight"},
        headers=headers(operator),
    )
    assert created.status_code == 201
    announcement_id = created.json()["id"]

    seen = await client.get("/api/announcements/company", headers=headers(tenant["sales"]))
    assert seen.status_code == 200
    assert seen.json()["unread_count"] == 1

    marked = await client.post(
        f"/api/announcements/{announcement_id}/read", headers=headers(tenant["sales"])
    )
    assert marked.status_code == 200
    again = await client.get("/api/announcements/company", headers=headers(tenant["sales"]))
    assert again.json()["unread_count"] == 0
