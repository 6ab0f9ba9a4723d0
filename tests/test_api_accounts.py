"""
API tests for account endpoints: users, companies, drivers and super users.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.core.security import create_access_token
from cavgo.db.models import User
from cavgo.domain.enums import PrincipalKind
from tests.conftest import acreate_company, acreate_user

API = "/api/v1"


def _register_payload(email: str = "amina@cavgo.rw") -> dict:
    return {
        "first_name": "Amina",
        "last_name": "Uwase",
        "email": email,
        "phone_number": "0788123456",
        "password": "secret123",
    }


class TestUserAuth:
    @pytest.mark.anyio
    async def test_should_register_and_use_token(self, client: AsyncClient):
        response = await client.post(f"{API}/users/register", json=_register_payload())

        assert response.status_code == 201
        body = response.json()
        assert body["user"]["user_type"] == "customer"
        assert "password_hash" not in body["user"]

        me = await client.get(f"{API}/users/me", headers={"Authorization": f"Bearer {body['token']}"})
        assert me.status_code == 200
        assert me.json()["email"] == "amina@cavgo.rw"

    @pytest.mark.anyio
    async def test_should_reject_duplicate_email(self, client: AsyncClient):
        await client.post(f"{API}/users/register", json=_register_payload())
        response = await client.post(f"{API}/users/register", json=_register_payload())

        assert response.status_code == 409
        assert response.json()["error"] == "ConflictError"

    @pytest.mark.anyio
    async def test_should_login_with_correct_password_only(self, client: AsyncClient):
        await client.post(f"{API}/users/register", json=_register_payload())

        ok = await client.post(
            f"{API}/users/login", json={"email": "amina@cavgo.rw", "password": "secret123"}
        )
        wrong = await client.post(
            f"{API}/users/login", json={"email": "amina@cavgo.rw", "password": "nope"}
        )

        assert ok.status_code == 200
        assert ok.json()["token"]
        assert wrong.status_code == 401

    @pytest.mark.anyio
    async def test_me_requires_token(self, client: AsyncClient):
        response = await client.get(f"{API}/users/me")
        assert response.status_code == 401


class TestUserAdministration:
    @pytest.mark.anyio
    async def test_only_admin_lists_users(
        self, client: AsyncClient, admin_headers: dict, customer_headers: dict
    ):
        assert (await client.get(f"{API}/users", headers=customer_headers)).status_code == 403
        response = await client.get(f"{API}/users", headers=admin_headers)
        assert response.status_code == 200
        assert len(response.json()) == 2

    @pytest.mark.anyio
    async def test_customer_cannot_read_other_user(
        self, client: AsyncClient, db: AsyncSession, customer_headers: dict
    ):
        other = await acreate_user(db)
        response = await client.get(f"{API}/users/{other.id}", headers=customer_headers)
        assert response.status_code == 403

    @pytest.mark.anyio
    async def test_admin_promotes_user_to_company(
        self, client: AsyncClient, db: AsyncSession, admin_headers: dict, customer: User
    ):
        company = await acreate_company(db)

        response = await client.patch(
            f"{API}/users/{customer.id}",
            json={"user_type": "company", "company_id": str(company.id)},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["user_type"] == "company"
        assert response.json()["company_id"] == str(company.id)

    @pytest.mark.anyio
    async def test_company_role_requires_a_company(
        self, client: AsyncClient, admin_headers: dict, customer: User
    ):
        response = await client.patch(
            f"{API}/users/{customer.id}", json={"user_type": "company"}, headers=admin_headers
        )
        reread = await client.get(f"{API}/users/{customer.id}", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Company users must belong to a company"
        assert reread.json()["user_type"] == "customer"

    @pytest.mark.anyio
    async def test_self_update_cannot_change_user_type(
        self, client: AsyncClient, customer_headers: dict
    ):
        response = await client.patch(
            f"{API}/users/me",
            json={"first_name": "Renamed", "user_type": "admin"},
            headers=customer_headers,
        )

        assert response.status_code == 200
        assert response.json()["first_name"] == "Renamed"
        assert response.json()["user_type"] == "customer"


class TestDrivers:
    @pytest.mark.anyio
    async def test_private_driver_registers_and_reads_profile(self, client: AsyncClient):
        response = await client.post(
            f"{API}/drivers/register",
            json={
                "name": "Eric Driver",
                "email": "eric@drivers.rw",
                "phone_number": "0788333444",
                "driver_type": "private",
                "license": "RW-LIC-77",
                "password": "secret123",
            },
        )
        assert response.status_code == 201
        token = response.json()["token"]

        me = await client.get(f"{API}/drivers/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["driver_type"] == "private"

    @pytest.mark.anyio
    async def test_company_driver_needs_company(self, client: AsyncClient):
        response = await client.post(
            f"{API}/drivers/register",
            json={
                "name": "Eric Driver",
                "email": "eric@drivers.rw",
                "phone_number": "0788333444",
                "driver_type": "company",
                "license": "RW-LIC-77",
                "password": "secret123",
            },
        )
        assert response.status_code == 400

    @pytest.mark.anyio
    async def test_user_token_is_not_a_driver(self, client: AsyncClient, customer_headers: dict):
        response = await client.get(f"{API}/drivers/me", headers=customer_headers)
        assert response.status_code == 401


class TestSuperUsers:
    @pytest.mark.anyio
    async def test_login_and_refresh(self, client: AsyncClient):
        payload = {
            "first_name": "Root",
            "last_name": "Admin",
            "email": "root@cavgo.rw",
            "phone_number": "0788999000",
            "password": "secret123",
        }
        assert (await client.post(f"{API}/superusers/register", json=payload)).status_code == 201

        login = await client.post(
            f"{API}/superusers/login", json={"email": "root@cavgo.rw", "password": "secret123"}
        )
        assert login.status_code == 200
        tokens = login.json()

        refreshed = await client.post(
            f"{API}/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
        )
        assert refreshed.status_code == 200
        access = refreshed.json()["access_token"]

        listing = await client.get(
            f"{API}/superusers", headers={"Authorization": f"Bearer {access}"}
        )
        assert listing.status_code == 200
        assert [s["email"] for s in listing.json()] == ["root@cavgo.rw"]

    @pytest.mark.anyio
    async def test_access_token_cannot_refresh(self, client: AsyncClient, customer: User):
        access = create_access_token(customer.id, PrincipalKind.SUPERUSER)
        response = await client.post(f"{API}/auth/refresh", json={"refresh_token": access})
        assert response.status_code == 401

    @pytest.mark.anyio
    async def test_admin_user_is_not_a_superuser(self, client: AsyncClient, admin_headers: dict):
        response = await client.get(f"{API}/superusers", headers=admin_headers)
        assert response.status_code == 401


class TestCompanies:
    @pytest.mark.anyio
    async def test_company_crud(self, client: AsyncClient):
        created = await client.post(
            f"{API}/companies",
            json={"name": "Ritco", "location": "Kigali", "email": "info@ritco.rw"},
        )
        assert created.status_code == 201

        listing = await client.get(f"{API}/companies")
        assert [c["name"] for c in listing.json()] == ["Ritco"]
