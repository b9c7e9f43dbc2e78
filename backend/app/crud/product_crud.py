# backend/app/crud/product_crud.py

"""
Operaciones CRUD para el modelo Product.

Este módulo implementa las lecturas del catálogo que necesitan el carrito y
el cálculo de envíos: producto por ID, listados paginados, lotes por IDs y
variantes.
"""

from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.db.models.product_model import Product, ProductVariant

import logging

logger = logging.getLogger(__name__)

# ========================================
# OPERACIONES DE LECTURA (READ)
# ========================================

async def get_product(db: AsyncSession, product_id: str) -> Optional[Product]:
    """Obtiene un producto por su ID, con sus variantes precargadas."""
    result = await db.execute(
        select(Product)
        .options(selectinload(Product.variants))
        .filter(Product.product_id == product_id)
    )
    return result.scalars().first()


async def get_products(
    db: AsyncSession,
    skip: int = 0,
    limit: int = 20,
    active_only: bool = True,
    name_like: Optional[str] = None,
) -> List[Product]:
    """
    Obtiene una lista filtrada y paginada de productos.
    """
    query = select(Product).options(selectinload(Product.variants))

    if active_only:
        query = query.filter(Product.active.is_(True))
    if name_like:
        query = query.filter(Product.name.ilike(f"%{name_like}%"))

    query = query.order_by(Product.product_id).offset(skip).limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


async def get_products_by_ids(db: AsyncSession, product_ids: List[str]) -> List[Product]:
    """Obtiene una lista de productos a partir de una lista de IDs."""
    if not product_ids:
        return []

    result = await db.execute(
        select(Product).filter(Product.product_id.in_(product_ids))
    )
    products = result.scalars().all()
    logger.debug(f"Lote de productos: pedidos {len(product_ids)}, encontrados {len(products)}")
    return products


async def get_variant(db: AsyncSession, product_id: str, variant_id: str) -> Optional[ProductVariant]:
    """Obtiene una variante concreta de un producto."""
    result = await db.execute(
        select(ProductVariant).filter(
            ProductVariant.product_id == product_id,
            ProductVariant.variant_id == variant_id,
        )
    )
    return result.scalars().first()
