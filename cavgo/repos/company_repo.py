"""
Repository functions for transport companies.
"""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.db.models import Company
from cavgo.repos.common import apply_changes, delete_entity, flush_or_conflict, get_or_404

logger = logging.getLogger(__name__)


async def list_companies(db: AsyncSession) -> list[Company]:
    result = await db.execute(select(Company).order_by(Company.name))
    return list(result.scalars().all())


async def get_company(db: AsyncSession, company_id: Any) -> Company:
    return await get_or_404(db, Company, company_id, label="Company", id_field="company_id")


async def create_company(db: AsyncSession, *, name: str, location: str, email: str) -> Company:
    company = Company(name=name, location=location, email=email)
    db.add(company)
    await flush_or_conflict(db, "Company email already registered", email=company.email)
    logger.info("Created company %s", company.id)
    return company


async def update_company(db: AsyncSession, company_id: Any, changes: dict[str, Any]) -> Company:
    company = await get_company(db, company_id)
    apply_changes(company, changes)
    await flush_or_conflict(db, "Company email already registered", email=company.email)
    return company


async def delete_company(db: AsyncSession, company_id: Any) -> None:
    company = await get_company(db, company_id)
    await delete_entity(db, company)
    logger.info("Deleted company %s", company_id)
