# backend/app/api/v1/endpoints/cart.py
"""
Este archivo contiene los endpoints para el carrito de compras.

Se encarga de gestionar las operaciones de agregar productos, cambiar
cantidades, eliminar productos, obtener el contenido del carrito y
reconciliar su stock antes del checkout.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from app.api import deps
from app.crud import product_crud
from app.schemas.cart_schema import Cart, CartItemCreate, CartItemUpdate, CartMerge, StockValidationResult
from app.services import cart_utils
from app.services.cart_service import CartService

logger = logging.getLogger(__name__)

# Router para el carrito de compras
router = APIRouter()

@router.get("/{user_id}", response_model=Cart)
async def get_cart(
    user_id: str,
    refresh: bool = Query(False, description="Actualizar antes el stock en caché de cada línea"),
    cart_service: CartService = Depends(deps.get_cart_service)
):
    """
    Obtiene el contenido del carrito de un usuario con sus totales.
    """
    return await cart_service.get_cart(user_id, refresh=refresh)

@router.post("/{user_id}/items", status_code=status.HTTP_201_CREATED, response_model=Cart)
async def add_item_to_cart(
    user_id: str,
    item: CartItemCreate,
    db: AsyncSession = Depends(deps.get_db),
    cart_service: CartService = Depends(deps.get_cart_service)
):
    """
    Añade un producto al carrito de un usuario, verificando el stock disponible.
    """
    product_db = await product_crud.get_product(db, item.product_id)
    if not product_db or not product_db.active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Producto no encontrado")

    product = product_db.to_dict()
    if item.variant_id:
        variant = await product_crud.get_variant(db, item.product_id, item.variant_id)
        if not variant:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Variante no encontrada")
        product["name"] = f"{product_db.name} - {variant.name}"
        if variant.price is not None:
            product["price"] = float(variant.price)

    # El stock del producto debe cubrir todas sus líneas (variantes incluidas) más lo nuevo
    items = await cart_service.get_cart_contents(user_id)
    requested = item.quantity + cart_utils.quantities_by_product(items).get(item.product_id, 0)
    if product["stock"] < requested:
        logger.warning(f"⚠️ CARRITO: stock insuficiente para {item.product_id} ({requested} > {product['stock']})")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Stock insuficiente para {product['name']}. Solicitado: {requested}, Disponible: {product['stock']}"
        )

    updated = await cart_service.add_product_to_cart(user_id, product, item.quantity, item.variant_id)
    return cart_service.build_cart(updated)

@router.patch("/{user_id}/items", response_model=Cart)
async def update_item_quantity(
    user_id: str,
    update: CartItemUpdate,
    cart_service: CartService = Depends(deps.get_cart_service)
):
    """
    Cambia la cantidad de un producto del carrito. Cantidad 0 lo elimina.
    """
    updated = await cart_service.update_quantity(
        user_id, update.product_id, update.variant_id, update.quantity, update.max_stock
    )
    return cart_service.build_cart(updated)

@router.delete("/{user_id}/items/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_item_from_cart(
    user_id: str,
    product_id: str,
    variant_id: Optional[str] = None,
    cart_service: CartService = Depends(deps.get_cart_service)
):
    """
    Elimina un producto del carrito de un usuario.
    """
    await cart_service.remove_product_from_cart(user_id, product_id, variant_id)

@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cart(
    user_id: str,
    cart_service: CartService = Depends(deps.get_cart_service)
):
    """
    Vacía completamente el carrito de un usuario.
    """
    await cart_service.clear_cart(user_id)

@router.post("/{user_id}/merge", response_model=Cart)
async def merge_cart(
    user_id: str,
    local_cart: CartMerge,
    cart_service: CartService = Depends(deps.get_cart_service)
):
    """
    Fusiona el carrito anónimo del navegador con el del usuario al iniciar sesión.
    """
    merged = await cart_service.merge_carts(user_id, [item.model_dump() for item in local_cart.items])
    return cart_service.build_cart(merged)

@router.post("/{user_id}/validate", response_model=StockValidationResult)
async def validate_cart_stock(
    user_id: str,
    force: bool = Query(False, description="Ignorar el intervalo mínimo entre validaciones"),
    cart_service: CartService = Depends(deps.get_cart_service)
):
    """
    Reconcilia el stock en caché del carrito con el stock autoritativo.
    """
    return await cart_service.reconcile_stock(user_id, force=force)

@router.post("/{user_id}/checkout/validate", response_model=StockValidationResult)
async def validate_checkout(
    user_id: str,
    cart_service: CartService = Depends(deps.get_cart_service)
):
    """
    Validación en tiempo real previa al pago. Un carrito no válido responde
    200 con valid=false y el mensaje para el usuario.
    """
    return await cart_service.validate_checkout(user_id)
