"""
FastAPI routes for field agents and their prepaid balance.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Response, status

from cavgo.api.schemas.staff import (
    AgentAuthResponse,
    AgentCreate,
    AgentResponse,
    AgentTransactionCreate,
    AgentUpdate,
    AgentWalletResponse,
)
from cavgo.api.schemas.users import LoginRequest
from cavgo.core.dependencies import AsyncDbSession, CurrentPrincipal
from cavgo.core.errors import ForbiddenError, UnauthorizedError
from cavgo.core.security import Principal, create_access_token, require_admin, require_agent
from cavgo.db.models import Agent, User
from cavgo.domain.enums import PrincipalKind
from cavgo.repos import agent_repo

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agents", tags=["agents"])


def _check_admin_or_self(principal: Principal, agent_id: uuid.UUID) -> None:
    if principal.is_anonymous:
        raise UnauthorizedError("User not authenticated")
    if principal.is_admin:
        return
    if principal.agent is not None and principal.agent.id == agent_id:
        return
    raise ForbiddenError("Permission denied", details={"agent_id": str(agent_id)})


@router.post("/register", response_model=AgentResponse, status_code=status.HTTP_201_CREATED)
async def register_agent(
    payload: AgentCreate,
    db: AsyncDbSession,
    admin: User = Depends(require_admin()),
) -> Agent:
    agent = await agent_repo.create_agent(db, **payload.model_dump())
    await db.commit()
    logger.info("Admin %s registered agent %s", admin.id, agent.id)
    return agent


@router.post("/login", response_model=AgentAuthResponse)
async def login_agent(payload: LoginRequest, db: AsyncDbSession) -> AgentAuthResponse:
    """Log an agent in. Inactive agents are refused."""
    agent = await agent_repo.authenticate_agent(db, email=payload.email, password=payload.password)
    token = create_access_token(agent.id, PrincipalKind.AGENT)
    return AgentAuthResponse(agent=AgentResponse.model_validate(agent), token=token)


@router.get("", response_model=list[AgentResponse])
async def list_agents(db: AsyncDbSession, admin: User = Depends(require_admin())) -> list[Agent]:
    return await agent_repo.list_agents(db)


@router.get("/me/wallet", response_model=AgentWalletResponse)
async def get_my_wallet(agent: Agent = Depends(require_agent())) -> AgentWalletResponse:
    return AgentWalletResponse(
        agent_id=agent.id,
        wallet_balance=agent.wallet_balance,
        transactions=agent.transactions,
    )


@router.get("/{agent_id}", response_model=AgentResponse)
async def get_agent(
    agent_id: uuid.UUID, db: AsyncDbSession, principal: CurrentPrincipal
) -> Agent:
    _check_admin_or_self(principal, agent_id)
    return await agent_repo.get_agent(db, agent_id)


@router.patch("/{agent_id}", response_model=AgentResponse)
async def update_agent(
    agent_id: uuid.UUID,
    payload: AgentUpdate,
    db: AsyncDbSession,
    principal: CurrentPrincipal,
) -> Agent:
    _check_admin_or_self(principal, agent_id)
    changes = payload.model_dump(exclude_unset=True)
    if "status" in changes and not principal.is_admin:
        raise ForbiddenError("Only admins can change an agent's status")
    agent = await agent_repo.get_agent(db, agent_id)
    agent = await agent_repo.update_agent(db, agent, changes)
    await db.commit()
    return agent


@router.post(
    "/{agent_id}/transactions",
    response_model=AgentWalletResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_agent_transaction(
    agent_id: uuid.UUID,
    payload: AgentTransactionCreate,
    db: AsyncDbSession,
    admin: User = Depends(require_admin()),
) -> AgentWalletResponse:
    """Credit or debit an agent's balance. Debits need enough balance."""
    agent = await agent_repo.get_agent(db, agent_id)
    agent = await agent_repo.add_agent_transaction(db, agent, **payload.model_dump())
    await db.commit()
    return AgentWalletResponse(
        agent_id=agent.id,
        wallet_balance=agent.wallet_balance,
        transactions=agent.transactions,
    )


@router.delete("/{agent_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_agent(
    agent_id: uuid.UUID,
    db: AsyncDbSession,
    admin: User = Depends(require_admin()),
) -> Response:
    await agent_repo.delete_agent(db, agent_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
