"""
Common repository functions shared across multiple repos.

All functions are async - use AsyncSession from SQLAlchemy.
"""

import logging
import uuid
from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.core.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")

__all__ = [
    "apply_changes",
    "delete_entity",
    "ensure_exists",
    "flush_or_conflict",
    "get_or_404",
]


async def get_or_404(
    db: AsyncSession, model: type[ModelT], entity_id: Any, *, label: str, id_field: str
) -> ModelT:
    """Load a row by primary key or raise NotFoundError.

    Args:
        db: Async database session
        model: ORM class to load
        entity_id: Primary key value
        label: Human name used in the error message ("Trip")
        id_field: Key used in the error details ("trip_id")
    """
    entity = await db.get(model, entity_id)
    if entity is None:
        raise NotFoundError(f"{label} not found", details={id_field: str(entity_id)})
    return entity


async def ensure_exists(
    db: AsyncSession, model: type, ids: list[uuid.UUID], *, label: str, id_field: str
) -> None:
    """Raise NotFoundError naming the first id in `ids` with no row."""
    if not ids:
        return
    result = await db.execute(select(model.id).where(model.id.in_(set(ids))))
    found = set(result.scalars().all())
    for entity_id in ids:
        if entity_id not in found:
            raise NotFoundError(f"{label} not found", details={id_field: str(entity_id)})


def apply_changes(entity: Any, changes: dict[str, Any]) -> Any:
    """Set each changed attribute on the entity.

    ORM validators raise ValueError on bad input; that surfaces as a 400.
    """
    try:
        for key, value in changes.items():
            setattr(entity, key, value)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    return entity


async def flush_or_conflict(db: AsyncSession, message: str, **details: Any) -> None:
    """Flush pending changes, turning unique-constraint violations into 409s."""
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        logger.info("%s: %s", message, e.orig)
        raise ConflictError(message, details=details) from e


async def delete_entity(db: AsyncSession, entity: Any) -> None:
    await db.delete(entity)
    await db.flush()
