# backend/app/crud/cart_crud.py
"""
Persistencia de carritos de compra en Redis.

Cada usuario tiene un único documento JSON con sus items. Las escrituras
reemplazan el documento completo (gana la última escritura).
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from redis.asyncio import Redis
from app.core.config import settings

logger = logging.getLogger(__name__)

# Conexión a Redis (se manejará de forma lazy)
_redis_client: Optional[Redis] = None

def _get_redis_client() -> Redis:
    """Inicializa y devuelve el cliente de Redis."""
    global _redis_client
    if _redis_client is None:
        _redis_client = Redis.from_url(
            f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}",
            decode_responses=True
        )
    return _redis_client

def _get_cart_key(user_id: str) -> str:
    """Genera la clave de Redis para el carrito de un usuario."""
    return f"{settings.CART_KEY_PREFIX}{user_id}"

async def get_cart_items(user_id: str) -> List[Dict[str, Any]]:
    """
    Obtiene los items del carrito de un usuario.
    Si no existe o está corrupto, devuelve un carrito vacío.
    """
    redis = _get_redis_client()
    cart_str = await redis.get(_get_cart_key(user_id))
    if not cart_str:
        return []

    try:
        return json.loads(cart_str).get("items", [])
    except (json.JSONDecodeError, AttributeError):
        logger.error(f"❌ Error decodificando el carrito del usuario {user_id}")
        return []

async def save_cart_items(user_id: str, items: List[Dict[str, Any]]) -> None:
    """Guarda el carrito completo de un usuario."""
    redis = _get_redis_client()
    document = {
        "items": items,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }
    await redis.set(_get_cart_key(user_id), json.dumps(document), ex=settings.CART_TTL_SECONDS)

async def delete_cart(user_id: str) -> None:
    """Elimina el carrito de un usuario, p. ej. tras completar una compra."""
    redis = _get_redis_client()
    await redis.delete(_get_cart_key(user_id))

async def close_redis_client() -> None:
    """Cierra la conexión con Redis al apagar la aplicación."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
