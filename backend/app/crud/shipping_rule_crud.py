# backend/app/crud/shipping_rule_crud.py
"""
Operaciones CRUD para el modelo ShippingRule.

Las reglas se listan siempre en orden de creación: el resolvedor de envíos
elige la primera regla de cada nivel de prioridad, así que ese orden es
parte del comportamiento.
"""

import uuid
from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.shipping_rule_model import ShippingRule
from app.schemas.shipping_schema import ShippingRuleCreate, ShippingRuleUpdate

async def get_rule(db: AsyncSession, rule_id: str) -> Optional[ShippingRule]:
    """Obtiene una regla de envío por su ID."""
    result = await db.execute(select(ShippingRule).filter(ShippingRule.rule_id == rule_id))
    return result.scalars().first()

async def get_rules(db: AsyncSession, active_only: bool = False) -> List[ShippingRule]:
    """Obtiene todas las reglas de envío en orden de creación."""
    query = select(ShippingRule)
    if active_only:
        query = query.filter(ShippingRule.activo.is_(True))
    result = await db.execute(query.order_by(ShippingRule.created_at, ShippingRule.rule_id))
    return result.scalars().all()

async def create_rule(db: AsyncSession, rule: ShippingRuleCreate) -> ShippingRule:
    """Crea una nueva regla de envío."""
    db_rule = ShippingRule(
        rule_id=rule.rule_id or f"RULE-{uuid.uuid4().hex[:10].upper()}",
        **rule.model_dump(exclude={"rule_id"}),
    )
    db.add(db_rule)
    await db.commit()
    await db.refresh(db_rule)
    return db_rule

async def update_rule(db: AsyncSession, rule_id: str, rule_update: ShippingRuleUpdate) -> Optional[ShippingRule]:
    """Actualiza parcialmente una regla de envío existente."""
    db_rule = await get_rule(db, rule_id)
    if not db_rule:
        return None

    for key, value in rule_update.model_dump(exclude_unset=True).items():
        setattr(db_rule, key, value)

    await db.commit()
    await db.refresh(db_rule)
    return db_rule

async def delete_rule(db: AsyncSession, rule_id: str) -> Optional[ShippingRule]:
    """Elimina una regla de envío."""
    db_rule = await get_rule(db, rule_id)
    if db_rule:
        await db.delete(db_rule)
        await db.commit()
    return db_rule
