"""
Repository functions for field agents and their prepaid balance.
"""

import logging
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.core.errors import (
    ConflictError,
    ForbiddenError,
    InsufficientFundsError,
    UnauthorizedError,
)
from cavgo.core.security import hash_password, verify_password
from cavgo.core.timeutils import utcnow
from cavgo.db.models import Agent, AgentTransaction
from cavgo.db.validators import normalize_email
from cavgo.domain.enums import AccountStatus, TransactionType
from cavgo.repos.common import apply_changes, delete_entity, flush_or_conflict, get_or_404

logger = logging.getLogger(__name__)


async def get_agent(db: AsyncSession, agent_id: Any) -> Agent:
    return await get_or_404(db, Agent, agent_id, label="Agent", id_field="agent_id")


async def get_agent_by_email(db: AsyncSession, email: str) -> Agent | None:
    result = await db.execute(select(Agent).where(Agent.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def list_agents(db: AsyncSession) -> list[Agent]:
    result = await db.execute(select(Agent).order_by(Agent.created_at))
    return list(result.scalars().all())


async def create_agent(
    db: AsyncSession,
    *,
    first_name: str,
    last_name: str,
    email: str,
    phone_number: str,
    password: str,
    status: AccountStatus = AccountStatus.ACTIVE,
) -> Agent:
    if await get_agent_by_email(db, email) is not None:
        raise ConflictError("Agent already exists", details={"email": normalize_email(email)})

    agent = Agent(
        first_name=first_name,
        last_name=last_name,
        email=email,
        phone_number=phone_number,
        password_hash=hash_password(password),
        status=status,
        wallet_balance=0,
        transactions=[],
    )
    db.add(agent)
    await flush_or_conflict(db, "Agent already exists", email=agent.email)
    logger.info("Registered agent %s", agent.id)
    return agent


async def authenticate_agent(db: AsyncSession, *, email: str, password: str) -> Agent:
    agent = await get_agent_by_email(db, email)
    if agent is None or not verify_password(password, agent.password_hash):
        raise UnauthorizedError("Invalid email or password")
    if agent.status != AccountStatus.ACTIVE:
        raise ForbiddenError("Agent is inactive", details={"agent_id": str(agent.id)})
    return agent


async def update_agent(db: AsyncSession, agent: Agent, changes: dict[str, Any]) -> Agent:
    changes = dict(changes)
    password = changes.pop("password", None)
    if password:
        changes["password_hash"] = hash_password(password)
    apply_changes(agent, changes)
    await flush_or_conflict(db, "Agent already exists", email=agent.email)
    logger.info("Updated agent %s", agent.id)
    return agent


async def add_agent_transaction(
    db: AsyncSession,
    agent: Agent,
    *,
    type: TransactionType,
    amount: int,
    description: str | None = None,
) -> Agent:
    """
    Record a ledger entry and move the agent's balance.

    Raises:
        InsufficientFundsError: If a debit exceeds the balance
    """
    stmt = update(Agent).where(Agent.id == agent.id)
    if type == TransactionType.DEBIT:
        stmt = stmt.where(Agent.wallet_balance >= amount)
    delta = amount if type == TransactionType.CREDIT else -amount
    result = await db.execute(
        stmt.values(wallet_balance=Agent.wallet_balance + delta).execution_options(
            synchronize_session=False
        )
    )
    await db.refresh(agent, attribute_names=["wallet_balance"])
    if result.rowcount == 0:
        raise InsufficientFundsError(
            "Insufficient balance for agent",
            details={"balance": agent.wallet_balance, "amount": amount},
        )

    agent.transactions.append(
        AgentTransaction(type=type, amount=amount, description=description, date=utcnow())
    )
    await db.flush()
    logger.info(
        "Agent %s %s %s (balance %s)", agent.id, type.value, amount, agent.wallet_balance
    )
    return agent


async def delete_agent(db: AsyncSession, agent_id: Any) -> None:
    agent = await get_agent(db, agent_id)
    await delete_entity(db, agent)
    logger.info("Deleted agent %s", agent_id)
