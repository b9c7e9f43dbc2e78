# backend/app/api/v1/endpoints/products.py

"""
Endpoints REST de solo lectura para el catálogo de productos.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import logging

from app.api import deps
from app.crud import product_crud, stock_crud
from app.schemas import product_schema

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/", response_model=List[product_schema.ProductResponse])
async def read_products(
    db: AsyncSession = Depends(deps.get_db),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=200),
    name: Optional[str] = None
) -> List[product_schema.ProductResponse]:
    """Obtiene una lista paginada de productos activos."""
    logger.debug(f"📋 PRODUCTOS: Listando - skip={skip}, limit={limit}")
    return await product_crud.get_products(db, skip=skip, limit=limit, name_like=name)


@router.get("/{product_id}", response_model=product_schema.ProductResponse)
async def read_product(
    product_id: str,
    db: AsyncSession = Depends(deps.get_db),
) -> product_schema.ProductResponse:
    """Obtiene los detalles de un producto por ID."""
    product = await product_crud.get_product(db, product_id)
    if not product:
        logger.warning(f"⚠️ PRODUCTO: No encontrado '{product_id}'")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


@router.get("/{product_id}/stock", response_model=product_schema.ProductStock)
async def read_product_stock(
    product_id: str,
    db: AsyncSession = Depends(deps.get_db),
) -> product_schema.ProductStock:
    """Stock autoritativo de un producto. Un producto inexistente tiene stock 0."""
    stock = await stock_crud.get_product_stock(db, product_id)
    return product_schema.ProductStock(product_id=product_id, stock=stock)
