# backend/app/services/cart_validation.py
"""
Reconciliación periódica del stock de un carrito.

Cada carrito tiene un validador que vuelve a consultar el stock
autoritativo de sus productos y reporta los items que quedaron cortos,
para que su campo `stock` en caché se sobrescriba. Las cantidades nunca se
ajustan automáticamente.

Reglas de planificación:
- la validación periódica no se repite antes de STOCK_REVALIDATION_INTERVAL
  segundos y se agrupa (debounce) con STOCK_VALIDATION_DEBOUNCE;
- la validación forzada (checkout) ignora el intervalo mínimo;
- una bandera booleana impide validaciones simultáneas; la forzada espera
  como máximo STOCK_LOCK_WAIT_ATTEMPTS * STOCK_LOCK_POLL_INTERVAL segundos
  y, si sigue bloqueada, continúa con los datos actuales.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from app.core.config import Settings, settings as default_settings
from app.services.stock_service import StockService

logger = logging.getLogger(__name__)

ResultCallback = Callable[[Dict[str, Any]], Awaitable[None]]


def _stock_updates(result: Mapping[str, Any]) -> Dict[str, int]:
    """Mapa product_id -> stock actual de los items que quedaron cortos."""
    return {
        item["product_id"]: item["current_stock"]
        for item in result.get("out_of_stock_items") or []
        if item.get("product_id") is not None
    }


class CartStockValidator:
    """
    Coordina la validación de stock de un carrito.
    """

    def __init__(
        self,
        stock_service: StockService,
        settings: Settings = default_settings,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.stock_service = stock_service
        self.revalidation_interval = settings.STOCK_REVALIDATION_INTERVAL
        self.debounce_delay = settings.STOCK_VALIDATION_DEBOUNCE
        self.lock_wait_attempts = settings.STOCK_LOCK_WAIT_ATTEMPTS
        self.lock_poll_interval = settings.STOCK_LOCK_POLL_INTERVAL
        self._clock = clock
        self._sleep = sleep

        self._validation_lock = False
        self._last_check: Optional[float] = None
        self._pending: Optional[asyncio.Task] = None

    @property
    def is_validating(self) -> bool:
        return self._validation_lock

    @property
    def last_check(self) -> Optional[float]:
        return self._last_check

    @property
    def pending_task(self) -> Optional[asyncio.Task]:
        """Validación programada que aún no ha terminado, si existe."""
        if self._pending is not None and not self._pending.done():
            return self._pending
        return None

    # ========================================
    # VALIDACIÓN PERIÓDICA
    # ========================================

    async def validate_periodically(self, items: List[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
        """
        Valida el stock si ha pasado el intervalo mínimo desde la última vez.

        Returns:
            El resultado con `stock_updates`, o None si la validación se omitió
            (otra en curso, carrito vacío o validación reciente).
        """
        if self._validation_lock:
            logger.debug("Validación de stock bloqueada por otra en progreso")
            return None

        if not items:
            return None

        now = self._clock()
        if self._last_check is not None and now - self._last_check < self.revalidation_interval:
            logger.debug("Validación de stock omitida: la última es demasiado reciente")
            return None

        self._validation_lock = True
        try:
            result = await self.stock_service.validate_cart_stock(items)
            if "error" not in result:
                self._last_check = now
            updates = _stock_updates(result)
            for product_id, stock in updates.items():
                logger.info(f"🔄 Actualizando info de stock para {product_id}: {stock} unidades")
            return {**result, "stock_updates": updates}
        finally:
            self._validation_lock = False

    def schedule_validation(
        self,
        items: List[Mapping[str, Any]],
        on_result: Optional[ResultCallback] = None,
    ) -> asyncio.Task:
        """
        Programa una validación periódica tras el retardo de debounce.

        Una nueva llamada cancela la validación pendiente anterior.
        """
        self.cancel()
        self._pending = asyncio.create_task(self._debounced_validation([dict(item) for item in items], on_result))
        return self._pending

    async def _debounced_validation(
        self,
        items: List[Dict[str, Any]],
        on_result: Optional[ResultCallback],
    ) -> Optional[Dict[str, Any]]:
        await self._sleep(self.debounce_delay)
        result = await self.validate_periodically(items)
        if result is not None and on_result is not None:
            await on_result(result)
        return result

    def cancel(self) -> None:
        """Cancela la validación programada pendiente, si existe."""
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    # ========================================
    # VALIDACIÓN FORZADA (CHECKOUT)
    # ========================================

    async def force_validation(self, items: List[Mapping[str, Any]]) -> Dict[str, Any]:
        """
        Fuerza una validación inmediata, sin respetar el intervalo mínimo.

        Si ya hay una validación en curso espera a que termine; si la espera
        se agota devuelve {"valid": True, "skipped": True} para continuar con
        los datos actuales.
        """
        if self._validation_lock:
            logger.info("🔄 Validación forzada en espera...")
            for _ in range(self.lock_wait_attempts):
                await self._sleep(self.lock_poll_interval)
                if not self._validation_lock:
                    break

            if self._validation_lock:
                logger.warning("⚠️ Tiempo de espera agotado, usando datos actuales")
                return {"valid": True, "skipped": True, "out_of_stock_items": [], "stock_updates": {}}

        self._validation_lock = True
        try:
            result = await self.stock_service.validate_items_stock(items)
            if "error" not in result:
                self._last_check = self._clock()
            else:
                logger.error(f"❌ Error al validar stock: {result['error']}")
            return {**result, "stock_updates": _stock_updates(result)}
        finally:
            self._validation_lock = False

    async def validate_checkout(self, items: List[Mapping[str, Any]]) -> Dict[str, Any]:
        """
        Valida el carrito en tiempo real antes del checkout.

        Returns:
            {"valid": True, ...} o {"valid": False, "error": <mensaje>, ...}
        """
        if not items:
            return {"valid": False, "error": "Tu carrito está vacío", "stock_updates": {}}

        result = await self.force_validation(items)
        stock_updates = result.get("stock_updates", {})

        if not result["valid"]:
            issues = result.get("out_of_stock_items") or []
            if len(issues) == 1:
                item = issues[0]
                return {
                    "valid": False,
                    "error": (
                        f"\"{item['name']}\" no está disponible en la cantidad solicitada. "
                        f"Solo hay {item['current_stock']} unidades disponibles."
                    ),
                    "out_of_stock_items": issues,
                    "stock_updates": stock_updates,
                }
            if issues:
                return {
                    "valid": False,
                    "error": (
                        "Algunos productos en tu carrito no están disponibles en la cantidad solicitada. "
                        "Por favor, revisa tu carrito y ajusta tu pedido."
                    ),
                    "out_of_stock_items": issues,
                    "stock_updates": stock_updates,
                }
            return {
                "valid": False,
                "error": "Error al verificar la disponibilidad de productos. Por favor, inténtalo de nuevo.",
                "stock_updates": stock_updates,
            }

        return {"valid": True, "skipped": result.get("skipped", False), "stock_updates": stock_updates}
