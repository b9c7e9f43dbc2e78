# backend/app/crud/stock_crud.py
"""
Operaciones de lectura de stock autoritativo.

El stock de un producto vive en la tabla de productos; estas funciones
lo consultan de forma individual o en lote para la reconciliación de
carritos.
"""

from typing import Dict, Iterable
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.product_model import Product

async def get_product_stock(db: AsyncSession, product_id: str) -> int:
    """
    Obtiene el stock actual de un producto. Devuelve 0 si no existe.
    """
    stock = await db.scalar(select(Product.stock).filter(Product.product_id == product_id))
    return stock or 0

async def get_stock_map(db: AsyncSession, product_ids: Iterable[str]) -> Dict[str, int]:
    """
    Obtiene el stock de varios productos en una sola consulta.

    Solo incluye los productos que existen; quien llama decide cómo tratar
    los ausentes.
    """
    ids = list(dict.fromkeys(pid for pid in product_ids if pid))
    if not ids:
        return {}

    result = await db.execute(
        select(Product.product_id, Product.stock).filter(Product.product_id.in_(ids))
    )
    return {product_id: stock or 0 for product_id, stock in result.all()}
