# backend/app/services/cart_service.py
"""
Servicio de Carrito de Compras para la aplicación.

Este servicio orquesta el carrito persistido de cada usuario: aplica las
operaciones puras de cart_utils, calcula totales y coordina la
reconciliación del stock en caché contra el stock autoritativo.
"""
import asyncio
import logging
from collections import OrderedDict
from typing import Any, Dict, List, Mapping, Optional

from app.core.config import Settings
from app.crud import cart_crud
from app.services import cart_utils
from app.services.cart_utils import CartPricing
from app.services.cart_validation import CartStockValidator
from app.services.stock_service import StockService, stock_service as default_stock_service

logger = logging.getLogger(__name__)

# Un validador por carrito activo, para conservar el intervalo mínimo y el
# bloqueo entre peticiones del mismo usuario. Ordenado del menos al más
# recientemente usado.
_validators: "OrderedDict[str, CartStockValidator]" = OrderedDict()


def _evict_validators(max_size: int) -> None:
    """Descarta los validadores menos usados que no estén validando."""
    if len(_validators) <= max_size:
        return
    for user_id in list(_validators):
        if len(_validators) <= max_size:
            break
        validator = _validators[user_id]
        if validator.is_validating:
            continue
        validator.cancel()
        del _validators[user_id]
        logger.debug(f"Validador de stock descartado para {user_id}")


class CartService:
    """
    Servicio para gestionar el carrito de compras de un usuario.
    """
    def __init__(self, settings: Settings, stock_service: Optional[StockService] = None):
        self.settings = settings
        self.pricing = CartPricing.from_settings(settings)
        self.stock_service = stock_service or default_stock_service

    def _get_validator(self, user_id: str) -> CartStockValidator:
        """Devuelve (o crea) el validador de stock del carrito de un usuario."""
        validator = _validators.get(user_id)
        if validator is None:
            validator = CartStockValidator(self.stock_service, settings=self.settings)
            _validators[user_id] = validator
            _evict_validators(self.settings.CART_VALIDATORS_MAX)
        else:
            _validators.move_to_end(user_id)
        return validator

    # ========================================
    # CONSULTA
    # ========================================

    def build_cart(self, items: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Construye la vista completa del carrito a partir de sus items."""
        out_of_stock = cart_utils.get_out_of_stock_items(items)
        insufficient = cart_utils.get_insufficient_stock_items(items)
        checkout = cart_utils.validate_cart_for_checkout(items)
        return {
            "items": items,
            "items_count": cart_utils.items_count(items),
            "totals": cart_utils.calculate_cart_totals(
                items,
                tax_rate=self.pricing.tax_rate,
                min_free_shipping=self.pricing.min_free_shipping,
                shipping_cost=self.pricing.shipping_cost,
            ),
            "out_of_stock_items": out_of_stock,
            "insufficient_stock_items": insufficient,
            "has_stock_issues": bool(out_of_stock or insufficient),
            "ready_for_checkout": checkout["valid"],
            "checkout_error": checkout.get("error"),
        }

    async def get_cart_contents(self, user_id: str) -> List[Dict[str, Any]]:
        """
        Obtiene todos los items del carrito de un usuario.
        """
        return await cart_crud.get_cart_items(user_id)

    async def get_cart(self, user_id: str, refresh: bool = False) -> Dict[str, Any]:
        """
        Vista del carrito. Con `refresh` el stock en caché de cada línea se
        reemplaza antes por el autoritativo y se guarda.
        """
        items = await self.get_cart_contents(user_id)
        if refresh and items:
            items = await self.stock_service.refresh_cart_items_stock(items)
            await cart_crud.save_cart_items(user_id, items)
        return self.build_cart(items)

    # ========================================
    # MODIFICACIÓN
    # ========================================

    async def add_product_to_cart(
        self,
        user_id: str,
        product: Mapping[str, Any],
        quantity: int = 1,
        variant_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Añade un producto al carrito de un usuario.
        Si la línea ya existe, suma la cantidad.
        """
        items = await self.get_cart_contents(user_id)
        updated = cart_utils.add_item(items, product, quantity, variant_id)
        await cart_crud.save_cart_items(user_id, updated)
        logger.info(f"✅ CARRITO: {quantity} x {product.get('product_id')} añadido al carrito de {user_id}")
        self.schedule_reconciliation(user_id, updated)
        return updated

    async def update_quantity(
        self,
        user_id: str,
        product_id: str,
        variant_id: Optional[str],
        quantity: int,
        max_stock: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Cambia la cantidad de una línea; 0 la elimina. Si no se indica
        max_stock se usa el stock en caché de la línea.
        """
        items = await self.get_cart_contents(user_id)
        if max_stock is None:
            current = cart_utils.find_item(items, product_id, variant_id)
            if current is not None and current.get("stock") is not None:
                max_stock = current["stock"]

        updated = cart_utils.update_item_quantity(items, product_id, variant_id, quantity, max_stock)
        await cart_crud.save_cart_items(user_id, updated)
        self.schedule_reconciliation(user_id, updated)
        return updated

    async def remove_product_from_cart(
        self,
        user_id: str,
        product_id: str,
        variant_id: Optional[str] = None,
    ) -> int:
        """
        Elimina un producto del carrito de un usuario. Devuelve 1 si existía.
        """
        items = await self.get_cart_contents(user_id)
        updated = cart_utils.remove_item(items, product_id, variant_id)
        if len(updated) == len(items):
            return 0
        await cart_crud.save_cart_items(user_id, updated)
        return 1

    async def clear_cart(self, user_id: str) -> None:
        """
        Vacía completamente el carrito de un usuario.
        """
        await cart_crud.delete_cart(user_id)
        validator = _validators.pop(user_id, None)
        if validator is not None:
            validator.cancel()

    async def merge_carts(self, user_id: str, local_items: List[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        """
        Fusiona el carrito local con el guardado al iniciar sesión.
        """
        stored = await self.get_cart_contents(user_id)
        if not local_items:
            return stored

        merged = cart_utils.merge_cart_items(list(local_items), stored)
        await cart_crud.save_cart_items(user_id, merged)
        logger.info(f"✅ CARRITO: fusionados {len(local_items)} items locales en el carrito de {user_id}")
        self.schedule_reconciliation(user_id, merged)
        return merged

    # ========================================
    # RECONCILIACIÓN DE STOCK
    # ========================================

    async def _apply_stock_updates(self, user_id: str, stock_updates: Mapping[str, int]) -> None:
        """Sobrescribe el stock en caché del carrito persistido."""
        if not stock_updates:
            return
        # Se relee el carrito: pudo cambiar mientras se consultaba el stock
        items = await self.get_cart_contents(user_id)
        await cart_crud.save_cart_items(user_id, cart_utils.apply_stock_updates(items, stock_updates))

    def schedule_reconciliation(self, user_id: str, items: List[Mapping[str, Any]]) -> Optional[asyncio.Task]:
        """
        Programa la revalidación periódica (con debounce) tras un cambio en
        el carrito. El resultado se aplica al carrito guardado.
        """
        if not self.settings.STOCK_BACKGROUND_VALIDATION or not items:
            return None

        async def persist(result: Dict[str, Any]) -> None:
            try:
                await self._apply_stock_updates(user_id, result.get("stock_updates", {}))
            except Exception as e:
                logger.error(f"❌ CARRITO: no se pudo guardar el stock revalidado de {user_id}: {e}")

        return self._get_validator(user_id).schedule_validation(items, on_result=persist)

    async def reconcile_stock(self, user_id: str, force: bool = False) -> Dict[str, Any]:
        """
        Revalida el stock del carrito y corrige las copias en caché.

        Sin `force` respeta el intervalo mínimo entre validaciones; en ese
        caso puede no realizarse ({"performed": False}).
        """
        items = await self.get_cart_contents(user_id)
        validator = self._get_validator(user_id)

        if force:
            result = await validator.force_validation(items)
        else:
            result = await validator.validate_periodically(items)
            if result is None:
                return {"performed": False, "valid": True, "out_of_stock_items": [], "stock_updates": {}}

        await self._apply_stock_updates(user_id, result.get("stock_updates", {}))
        if not result["valid"] and not result.get("error"):
            result = {**result, "error": self.stock_service.format_stock_error_message(result["out_of_stock_items"])}
        return {"performed": True, **result}

    async def validate_checkout(self, user_id: str) -> Dict[str, Any]:
        """
        Valida el carrito en tiempo real antes de pagar.
        """
        items = await self.get_cart_contents(user_id)
        result = await self._get_validator(user_id).validate_checkout(items)
        await self._apply_stock_updates(user_id, result.get("stock_updates", {}))
        if not result["valid"]:
            logger.warning(f"⚠️ CHECKOUT: carrito de {user_id} no válido: {result.get('error')}")
        return result
