"""
API tests for NFC cards, card wallets and agent balances.
"""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.core.config import settings
from cavgo.core.errors import InsufficientFundsError
from cavgo.db.models import Agent, User, Wallet
from cavgo.domain.enums import AccountStatus, PrincipalKind, TransactionType
from cavgo.repos.agent_repo import add_agent_transaction
from cavgo.repos.wallet_repo import apply_wallet_transaction
from tests.conftest import acreate_agent, auth_header

API = "/api/v1"


async def _issue_card_with_wallet(client: AsyncClient, admin_headers: dict, nfc_id: str = "04FFEE01") -> dict:
    card = await client.post(
        f"{API}/cards",
        json={
            "nfc_id": nfc_id,
            "email": "jean@passengers.rw",
            "phone": "0788765432",
            "first_name": "Jean",
            "last_name": "Mugisha",
        },
        headers=admin_headers,
    )
    assert card.status_code == 201
    wallet = await client.post(f"{API}/wallets", json={"nfc_id": nfc_id}, headers=admin_headers)
    assert wallet.status_code == 201
    return {"card": card.json(), "wallet": wallet.json()}


def _transaction(nfc_id: str, type_: str, amount: int) -> dict:
    return {"nfc_id": nfc_id, "transaction": {"type": type_, "amount": amount, "description": "test"}}


class TestCards:
    @pytest.mark.anyio
    async def test_issuing_card_creates_customer_with_default_card(
        self, client: AsyncClient, admin_headers: dict
    ):
        issued = await _issue_card_with_wallet(client, admin_headers)
        card = issued["card"]

        assert card["card_id"].startswith("CARD-")
        assert len(card["card_id"]) == 14
        login = await client.post(
            f"{API}/users/login", json={"email": "jean@passengers.rw", "password": settings.default_card_user_password}
        )
        assert login.status_code == 200
        assert login.json()["user"]["default_card_id"] == card["id"]

    @pytest.mark.anyio
    async def test_second_wallet_for_card_is_a_conflict(self, client: AsyncClient, admin_headers: dict):
        await _issue_card_with_wallet(client, admin_headers)
        duplicate = await client.post(
            f"{API}/wallets", json={"nfc_id": "04FFEE01"}, headers=admin_headers
        )
        assert duplicate.status_code == 409

    @pytest.mark.anyio
    async def test_customer_cannot_issue_cards(self, client: AsyncClient, customer_headers: dict):
        response = await client.post(
            f"{API}/cards",
            json={
                "nfc_id": "04FFEE02",
                "email": "x@passengers.rw",
                "phone": "0788000111",
                "first_name": "X",
                "last_name": "Y",
            },
            headers=customer_headers,
        )
        assert response.status_code == 403


class TestWalletTransactions:
    @pytest.mark.anyio
    async def test_admin_credits_and_debits(self, client: AsyncClient, admin_headers: dict):
        await _issue_card_with_wallet(client, admin_headers)

        credit = await client.post(
            f"{API}/wallets/transactions", json=_transaction("04FFEE01", "credit", 2000), headers=admin_headers
        )
        debit = await client.post(
            f"{API}/wallets/transactions", json=_transaction("04FFEE01", "debit", 500), headers=admin_headers
        )

        assert credit.status_code == 200
        assert debit.json()["wallet"]["balance"] == 1500
        assert [t["type"] for t in debit.json()["wallet"]["transactions"]] == ["credit", "debit"]
        assert debit.json()["agent_balance"] is None

    @pytest.mark.anyio
    async def test_debit_beyond_balance_is_refused(self, client: AsyncClient, admin_headers: dict):
        await _issue_card_with_wallet(client, admin_headers)

        response = await client.post(
            f"{API}/wallets/transactions", json=_transaction("04FFEE01", "debit", 100), headers=admin_headers
        )

        assert response.status_code == 402

    @pytest.mark.anyio
    async def test_agent_credit_comes_from_agent_balance(
        self, client: AsyncClient, db: AsyncSession, admin_headers: dict
    ):
        await _issue_card_with_wallet(client, admin_headers)
        agent = await acreate_agent(db, balance=5000)
        headers = auth_header(agent.id, PrincipalKind.AGENT)

        response = await client.post(
            f"{API}/wallets/transactions", json=_transaction("04FFEE01", "credit", 1200), headers=headers
        )

        assert response.status_code == 200
        assert response.json()["wallet"]["balance"] == 1200
        assert response.json()["agent_balance"] == 3800

    @pytest.mark.anyio
    async def test_agent_cannot_debit(
        self, client: AsyncClient, db: AsyncSession, admin_headers: dict
    ):
        await _issue_card_with_wallet(client, admin_headers)
        agent = await acreate_agent(db, balance=5000)

        response = await client.post(
            f"{API}/wallets/transactions",
            json=_transaction("04FFEE01", "debit", 100),
            headers=auth_header(agent.id, PrincipalKind.AGENT),
        )

        assert response.status_code == 403

    @pytest.mark.anyio
    async def test_agent_cannot_credit_more_than_balance(
        self, client: AsyncClient, db: AsyncSession, admin_headers: dict
    ):
        await _issue_card_with_wallet(client, admin_headers)
        agent = await acreate_agent(db, balance=100)

        response = await client.post(
            f"{API}/wallets/transactions",
            json=_transaction("04FFEE01", "credit", 1000),
            headers=auth_header(agent.id, PrincipalKind.AGENT),
        )

        assert response.status_code == 402

    @pytest.mark.anyio
    async def test_customer_cannot_move_funds(
        self, client: AsyncClient, admin_headers: dict, customer_headers: dict
    ):
        await _issue_card_with_wallet(client, admin_headers)

        response = await client.post(
            f"{API}/wallets/transactions", json=_transaction("04FFEE01", "credit", 100), headers=customer_headers
        )

        assert response.status_code == 403

    @pytest.mark.anyio
    async def test_unknown_card_is_not_found(self, client: AsyncClient, admin_headers: dict):
        response = await client.post(
            f"{API}/wallets/transactions", json=_transaction("nope", "credit", 100), headers=admin_headers
        )
        assert response.status_code == 404


class TestAgents:
    @pytest.mark.anyio
    async def test_admin_registers_agent_who_logs_in(self, client: AsyncClient, admin_headers: dict):
        created = await client.post(
            f"{API}/agents/register",
            json={
                "first_name": "Grace",
                "last_name": "Agent",
                "email": "grace@agents.rw",
                "phone_number": "0788444555",
                "password": "secret123",
            },
            headers=admin_headers,
        )
        assert created.status_code == 201
        assert created.json()["wallet_balance"] == 0

        login = await client.post(
            f"{API}/agents/login", json={"email": "grace@agents.rw", "password": "secret123"}
        )
        assert login.status_code == 200
        assert login.json()["agent"]["email"] == "grace@agents.rw"

    @pytest.mark.anyio
    async def test_admin_tops_up_agent(self, client: AsyncClient, db: AsyncSession, admin_headers: dict):
        agent = await acreate_agent(db)

        response = await client.post(
            f"{API}/agents/{agent.id}/transactions",
            json={"type": "credit", "amount": 10000, "description": "Float"},
            headers=admin_headers,
        )

        assert response.status_code == 201
        assert response.json()["wallet_balance"] == 10000

    @pytest.mark.anyio
    async def test_agent_cannot_change_own_status(self, client: AsyncClient, db: AsyncSession):
        agent = await acreate_agent(db)
        headers = auth_header(agent.id, PrincipalKind.AGENT)

        renamed = await client.patch(f"{API}/agents/{agent.id}", json={"first_name": "Alicia"}, headers=headers)
        status_change = await client.patch(
            f"{API}/agents/{agent.id}", json={"status": "inactive"}, headers=headers
        )

        assert renamed.status_code == 200
        assert status_change.status_code == 403

    @pytest.mark.anyio
    async def test_deactivated_agent_token_stops_working(
        self, client: AsyncClient, db: AsyncSession, admin_headers: dict
    ):
        agent = await acreate_agent(db)
        headers = auth_header(agent.id, PrincipalKind.AGENT)

        deactivated = await client.patch(
            f"{API}/agents/{agent.id}", json={"status": AccountStatus.INACTIVE.value}, headers=admin_headers
        )
        assert deactivated.status_code == 200

        response = await client.get(f"{API}/agents/me/wallet", headers=headers)
        assert response.status_code == 401

    @pytest.mark.anyio
    async def test_agent_cannot_read_another_agent(self, client: AsyncClient, db: AsyncSession):
        agent = await acreate_agent(db)
        other = await acreate_agent(db)

        response = await client.get(
            f"{API}/agents/{other.id}", headers=auth_header(agent.id, PrincipalKind.AGENT)
        )

        assert response.status_code == 403

    @pytest.mark.anyio
    async def test_customer_cannot_list_agents(self, client: AsyncClient, customer: User, customer_headers: dict):
        response = await client.get(f"{API}/agents", headers=customer_headers)
        assert response.status_code == 403


class TestBalanceDebits:
    """Debits check the stored balance, not the copy loaded into the session."""

    @pytest.mark.anyio
    async def test_agent_debit_sees_a_concurrent_spend(self, db: AsyncSession):
        agent = await acreate_agent(db, balance=1000)
        await db.execute(
            update(Agent)
            .where(Agent.id == agent.id)
            .values(wallet_balance=200)
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(InsufficientFundsError):
            await add_agent_transaction(db, agent, type=TransactionType.DEBIT, amount=500)

        assert agent.wallet_balance == 200

    @pytest.mark.anyio
    async def test_wallet_debit_sees_a_concurrent_spend(
        self, client: AsyncClient, db: AsyncSession, admin_headers: dict
    ):
        issued = await _issue_card_with_wallet(client, admin_headers)
        wallet_id = uuid.UUID(issued["wallet"]["id"])
        await client.post(
            f"{API}/wallets/transactions", json=_transaction("04FFEE01", "credit", 1000), headers=admin_headers
        )
        await db.execute(
            update(Wallet)
            .where(Wallet.id == wallet_id)
            .values(balance=100)
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(InsufficientFundsError):
            await apply_wallet_transaction(
                db, nfc_id="04FFEE01", type=TransactionType.DEBIT, amount=500
            )

        wallet = await db.get(Wallet, wallet_id)
        assert wallet.balance == 100
