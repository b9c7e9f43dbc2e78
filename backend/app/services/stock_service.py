# backend/app/services/stock_service.py
"""
Servicio de Stock para la aplicación.

Centraliza la consulta del stock autoritativo de los productos y la
validación del carrito contra ese stock. El stock guardado en cada item
del carrito es solo una copia en caché; este servicio es la fuente de
verdad para corregirla.
"""

import json
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from app.core.config import Settings, settings as default_settings
from app.crud import stock_crud
from app.services import cart_utils
from app.db.database import AsyncSessionLocal

logger = logging.getLogger(__name__)

StockReader = Callable[[List[str]], Awaitable[Dict[str, int]]]


async def read_stock_from_db(product_ids: List[str]) -> Dict[str, int]:
    """Lector de stock por defecto: consulta la base de datos."""
    async with AsyncSessionLocal() as db:
        return await stock_crud.get_stock_map(db, product_ids)


def _cache_key(items: Iterable[Mapping[str, Any]]) -> str:
    """Clave de caché a partir de los pares (producto, cantidad) ordenados."""
    simplified = sorted(
        ({"product_id": str(item.get("product_id")), "quantity": item.get("quantity")} for item in items),
        key=lambda entry: entry["product_id"],
    )
    return json.dumps(simplified)


class StockService:
    """
    Servicio para consultar y validar stock de productos.
    """

    def __init__(
        self,
        stock_reader: Optional[StockReader] = None,
        settings: Settings = default_settings,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._read_stock = stock_reader or read_stock_from_db
        self.cache_ttl = settings.STOCK_CACHE_TTL
        self._clock = clock
        self._validation_cache: Dict[str, Tuple[float, Dict[str, Any]]] = {}

    # ========================================
    # CONSULTAS DE STOCK
    # ========================================

    async def get_multiple_products_stock(self, product_ids: Iterable[str]) -> Dict[str, int]:
        """
        Obtiene el stock actual de varios productos.

        Los productos inexistentes se reportan con stock 0. Si la consulta
        falla se registra el error y se devuelve un mapa vacío.
        """
        unique_ids = list(dict.fromkeys(pid for pid in product_ids if pid))
        if not unique_ids:
            return {}

        try:
            found = await self._read_stock(unique_ids)
        except Exception as e:
            logger.error(f"❌ Error al obtener stock múltiple ({len(unique_ids)} productos): {e}")
            return {}

        return {pid: int(found.get(pid) or 0) for pid in unique_ids}

    async def get_product_stock(self, product_id: str) -> int:
        """Stock actual de un producto, 0 si no existe o hay error."""
        if not product_id:
            return 0
        stock_map = await self.get_multiple_products_stock([product_id])
        return stock_map.get(product_id, 0)

    # ========================================
    # VALIDACIÓN
    # ========================================

    async def validate_items_stock(self, items: List[Mapping[str, Any]]) -> Dict[str, Any]:
        """
        Verifica si hay stock suficiente para una lista de items.

        Se compara el stock de cada producto con lo pedido entre todas sus
        líneas; `requested` es ese total.

        Returns:
            {"valid": bool, "out_of_stock_items": [...]} y, si la consulta
            falló, también "error".
        """
        if not items:
            return {"valid": True, "out_of_stock_items": []}

        try:
            stock_map = await self._read_stock(list(dict.fromkeys(item.get("product_id") for item in items)))
        except Exception as e:
            logger.error(f"❌ Error validando stock de {len(items)} items: {e}")
            return {"valid": False, "out_of_stock_items": [], "error": str(e)}

        # Las variantes comparten el stock del producto
        requested_by_product = cart_utils.quantities_by_product(list(items))
        out_of_stock_items = []
        for item in items:
            current_stock = int(stock_map.get(item.get("product_id")) or 0)
            requested = requested_by_product[item.get("product_id")]
            if current_stock < requested:
                out_of_stock_items.append({
                    **item,
                    "current_stock": current_stock,
                    "requested": requested,
                    "name": item.get("name") or "Producto",
                })

        return {"valid": not out_of_stock_items, "out_of_stock_items": out_of_stock_items}

    async def validate_cart_stock(self, items: List[Mapping[str, Any]]) -> Dict[str, Any]:
        """
        Igual que validate_items_stock pero con caché de resultados.

        La caché se indexa por la combinación de productos y cantidades del
        carrito y caduca tras `STOCK_CACHE_TTL` segundos; las entradas caducadas se
        eliminan al guardar una nueva. Los resultados con error no se guardan.
        """
        if not items:
            return {"valid": True, "out_of_stock_items": []}

        key = _cache_key(items)
        now = self._clock()
        cached = self._validation_cache.get(key)
        if cached and now - cached[0] < self.cache_ttl:
            logger.debug("Usando resultado de validación de stock en caché")
            return cached[1]

        result = await self.validate_items_stock(items)
        if "error" in result:
            return {**result, "error": "Error al verificar disponibilidad de productos"}

        self._evict_expired(now)
        self._validation_cache[key] = (now, result)
        return result

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, (stored_at, _) in self._validation_cache.items() if now - stored_at >= self.cache_ttl]
        for key in expired:
            del self._validation_cache[key]

    async def refresh_cart_items_stock(self, items: List[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        """
        Devuelve copias de los items con el stock actualizado.

        Si la consulta falla se devuelven los items originales.
        """
        if not items:
            return []

        try:
            stock_map = await self._read_stock(list(dict.fromkeys(item.get("product_id") for item in items)))
        except Exception as e:
            logger.error(f"❌ Error actualizando stock de items: {e}")
            return [dict(item) for item in items]

        return [
            {
                **item,
                "stock": stock_map[item.get("product_id")] if item.get("product_id") in stock_map else item.get("stock"),
                "stock_validated": True,
            }
            for item in items
        ]

    @staticmethod
    def format_stock_error_message(out_of_stock_items: Optional[List[Mapping[str, Any]]]) -> str:
        """Mensaje amigable para el usuario a partir de los problemas de stock."""
        if not out_of_stock_items:
            return "Ha ocurrido un error al verificar el stock disponible."

        if len(out_of_stock_items) == 1:
            item = out_of_stock_items[0]
            name = item.get("name") or "El producto seleccionado"
            if (item.get("current_stock") or 0) <= 0:
                return f"{name} ya no está disponible."
            return f"{name} solo tiene {item['current_stock']} unidades disponibles."

        return (
            "Algunos productos en tu carrito no están disponibles en la cantidad solicitada. "
            "Por favor, revisa tu carrito."
        )


# Instancia singleton del servicio
stock_service = StockService()
