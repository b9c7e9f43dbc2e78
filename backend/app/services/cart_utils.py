# backend/app/services/cart_utils.py
"""
Utilidades puras para manipular el carrito de compras.

Un item del carrito es un diccionario con la forma:

    {"product_id": str, "variant_id": str | None, "quantity": int,
     "price": float, "stock": int, "name": str}

La clave de unicidad de un item es (product_id, variant_id). Eliminar un
producto equivale a fijar su cantidad en cero. Ninguna función modifica
la lista recibida: todas devuelven una lista nueva.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from numbers import Number
from typing import Any, Dict, List, Mapping, Optional

from app.core.config import Settings


@dataclass(frozen=True)
class CartPricing:
    """Parámetros de precio del carrito, pasados explícitamente por valor."""
    tax_rate: float = 0.16
    min_free_shipping: float = 500.0
    shipping_cost: float = 50.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "CartPricing":
        return cls(
            tax_rate=settings.TAX_RATE,
            min_free_shipping=settings.MIN_FREE_SHIPPING,
            shipping_cost=settings.SHIPPING_COST,
        )


_CENT = Decimal("0.01")


def _money(value: Any) -> Decimal:
    """Redondea un importe a dos decimales (redondeo comercial)."""
    return Decimal(str(value or 0)).quantize(_CENT, rounding=ROUND_HALF_UP)


def _is_quantity(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool) and value == value


def _matches(item: Mapping[str, Any], product_id: str, variant_id: Optional[str]) -> bool:
    if item.get("product_id") != product_id:
        return False
    if variant_id:
        return item.get("variant_id") == variant_id
    return not item.get("variant_id")


# ========================================
# OPERACIONES SOBRE ITEMS
# ========================================

def update_item_quantity(
    items: Any,
    product_id: Optional[str],
    variant_id: Optional[str],
    new_quantity: Any,
    max_stock: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Actualiza la cantidad de un item del carrito.

    - Contenedor inválido: devuelve [].
    - product_id vacío o cantidad negativa/no numérica: lista sin cambios.
    - Cantidad 0: elimina el item.
    - En otro caso reemplaza la cantidad, limitada a max_stock si se indica.
      Con max_stock menor que 1 la línea queda como estaba: solo la
      cantidad 0 elimina un item.

    Args:
        items: Lista actual de items
        product_id: Producto a actualizar
        variant_id: Variante del producto, o None para el producto sin variante
        new_quantity: Nueva cantidad deseada
        max_stock: Stock máximo permitido (opcional)

    Returns:
        Nueva lista de items
    """
    if not isinstance(items, list):
        return []

    if not product_id or not _is_quantity(new_quantity) or new_quantity < 0:
        return [dict(item) for item in items]

    quantity = int(new_quantity)
    if _is_quantity(max_stock) and quantity > max_stock:
        if max_stock < 1:
            # Sin stock no se puede ampliar la línea, pero tampoco se elimina
            return [dict(item) for item in items]
        quantity = int(max_stock)

    updated = []
    for item in items:
        if not _matches(item, product_id, variant_id):
            updated.append(dict(item))
        elif quantity > 0:
            updated.append({**item, "quantity": quantity})
    return updated


def add_item(
    items: Any,
    product: Mapping[str, Any],
    quantity: int = 1,
    variant_id: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Añade un producto al carrito.

    Si la línea (product_id, variant_id) ya existe se suma la cantidad;
    si no, se agrega una línea nueva con los datos del producto.
    """
    current = [dict(item) for item in items] if isinstance(items, list) else []
    product_id = product.get("product_id")
    if not product_id or not _is_quantity(quantity) or quantity <= 0:
        return current

    for item in current:
        if _matches(item, product_id, variant_id):
            item["quantity"] = int(item.get("quantity", 0)) + int(quantity)
            for key in ("price", "stock", "name"):
                if product.get(key) is not None:
                    item[key] = product[key]
            return current

    current.append({
        "product_id": product_id,
        "variant_id": variant_id,
        "name": product.get("name") or "Producto",
        "price": float(product.get("price") or 0),
        "stock": product.get("stock"),
        "quantity": int(quantity),
    })
    return current


def remove_item(items: Any, product_id: str, variant_id: Optional[str] = None) -> List[Dict[str, Any]]:
    """Elimina una línea del carrito (equivale a fijar la cantidad en 0)."""
    return update_item_quantity(items, product_id, variant_id, 0)


def find_item(items: Any, product_id: str, variant_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
    if not isinstance(items, list):
        return None
    return next((item for item in items if _matches(item, product_id, variant_id)), None)


def items_count(items: Any) -> int:
    """Número total de unidades en el carrito."""
    if not isinstance(items, list):
        return 0
    return sum(int(item.get("quantity") or 0) for item in items)


def quantities_by_product(items: Any) -> Dict[str, int]:
    """
    Unidades pedidas por producto, sumando todas sus variantes.

    Las variantes comparten el stock del producto, así que cualquier
    comprobación de stock se hace sobre este total.
    """
    totals: Dict[str, int] = {}
    for item in items if isinstance(items, list) else []:
        product_id = item.get("product_id")
        totals[product_id] = totals.get(product_id, 0) + int(item.get("quantity") or 0)
    return totals


def merge_cart_items(local_items: Any, stored_items: Any) -> List[Dict[str, Any]]:
    """
    Fusiona el carrito local con el guardado al iniciar sesión.

    Las líneas presentes en ambos carritos suman sus cantidades; el resto
    se conserva tal cual.
    """
    merged = [dict(item) for item in local_items] if isinstance(local_items, list) else []
    for stored in stored_items if isinstance(stored_items, list) else []:
        existing = find_item(merged, stored.get("product_id"), stored.get("variant_id"))
        if existing is not None:
            existing["quantity"] = int(existing.get("quantity") or 0) + int(stored.get("quantity") or 0)
        else:
            merged.append(dict(stored))
    return merged


def apply_stock_updates(items: Any, stock_map: Mapping[str, int]) -> List[Dict[str, Any]]:
    """
    Sobrescribe el stock en caché de los items con datos autoritativos.

    Nunca modifica las cantidades: solo el campo `stock`.
    """
    if not isinstance(items, list):
        return []
    return [
        {**item, "stock": stock_map[item.get("product_id")]} if item.get("product_id") in stock_map else dict(item)
        for item in items
    ]


# ========================================
# TOTALES Y PROBLEMAS DE STOCK
# ========================================

def calculate_cart_totals(
    items: Any,
    tax_rate: float = 0.16,
    min_free_shipping: float = 500,
    shipping_cost: float = 50,
) -> Dict[str, Any]:
    """
    Calcula los totales del carrito.

    Los precios de los items ya incluyen impuestos, por lo que el impuesto
    se desglosa del total: taxes = total - total / (1 + tax_rate) y
    subtotal = total - taxes. El envío es gratis cuando el total alcanza
    min_free_shipping (o el carrito está vacío); is_free_shipping es True
    exactamente cuando shipping es 0. Todos los importes se redondean a dos
    decimales.
    """
    total = Decimal("0")
    for item in items if isinstance(items, list) else []:
        total += Decimal(str(item.get("price") or 0)) * int(item.get("quantity") or 0)

    rate = Decimal(str(tax_rate))
    total = _money(total)
    taxes = _money(total - total / (1 + rate))
    subtotal = total - taxes

    # Un carrito vacío no paga envío
    is_free_shipping = total == 0 or total >= Decimal(str(min_free_shipping))
    shipping = Decimal("0") if is_free_shipping else _money(shipping_cost)

    return {
        "subtotal": float(subtotal),
        "taxes": float(taxes),
        "shipping": float(shipping),
        "total": float(total),
        "final_total": float(total + shipping),
        "is_free_shipping": is_free_shipping,
    }


def get_out_of_stock_items(items: Any) -> List[Dict[str, Any]]:
    """Items sin existencias (stock 0 o desconocido)."""
    if not isinstance(items, list):
        return []
    return [item for item in items if (item.get("stock") or 0) == 0]


def get_insufficient_stock_items(items: Any) -> List[Dict[str, Any]]:
    """
    Items con stock positivo pero menor a lo pedido del producto (todas
    sus variantes juntas).
    """
    if not isinstance(items, list):
        return []
    requested = quantities_by_product(items)
    return [
        item for item in items
        if (item.get("stock") or 0) > 0 and requested[item.get("product_id")] > item["stock"]
    ]


def validate_cart_for_checkout(items: Any) -> Dict[str, Any]:
    """Validación local (sin consultar el servidor) previa al checkout."""
    if not isinstance(items, list) or not items:
        return {"valid": False, "error": "Tu carrito está vacío"}

    out_of_stock = get_out_of_stock_items(items)
    if out_of_stock:
        return {
            "valid": False,
            "error": "Hay productos sin existencia en tu carrito",
            "out_of_stock_items": out_of_stock,
        }

    insufficient = get_insufficient_stock_items(items)
    if insufficient:
        return {
            "valid": False,
            "error": "Hay productos con cantidades mayores al stock disponible",
            "insufficient_stock_items": insufficient,
        }

    return {"valid": True}
