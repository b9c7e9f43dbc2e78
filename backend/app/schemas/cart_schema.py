# backend/app/schemas/cart_schema.py
"""
Esquemas Pydantic para la gestión del carrito de la compra.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional

# ========================================
# ITEMS DEL CARRITO
# ========================================

class CartItem(BaseModel):
    """Línea del carrito. La clave de unicidad es (product_id, variant_id)."""
    product_id: str
    variant_id: Optional[str] = None
    name: str = "Producto"
    price: float = Field(..., ge=0, description="Precio unitario con impuestos incluidos")
    quantity: int = Field(..., ge=0)
    stock: Optional[int] = Field(None, description="Copia en caché del stock autoritativo")
    stock_validated: bool = False

    model_config = ConfigDict(extra="ignore")

class CartItemCreate(BaseModel):
    """Esquema para añadir un item al carrito."""
    product_id: str
    variant_id: Optional[str] = None
    quantity: int = Field(1, gt=0)

class CartItemUpdate(BaseModel):
    """Esquema para cambiar la cantidad de un item. Cantidad 0 lo elimina."""
    product_id: str
    variant_id: Optional[str] = None
    quantity: int = Field(..., ge=0)
    max_stock: Optional[int] = Field(None, ge=0)

class CartMerge(BaseModel):
    """Carrito local (anónimo) a fusionar con el guardado al iniciar sesión."""
    items: List[CartItem] = []

# ========================================
# TOTALES Y ESTADO DEL CARRITO
# ========================================

class CartTotals(BaseModel):
    subtotal: float
    taxes: float
    shipping: float
    total: float
    final_total: float
    is_free_shipping: bool

class Cart(BaseModel):
    """Esquema que representa el estado completo del carrito."""
    items: List[CartItem]
    items_count: int
    totals: CartTotals
    out_of_stock_items: List[CartItem] = []
    insufficient_stock_items: List[CartItem] = []
    has_stock_issues: bool = False
    ready_for_checkout: bool = False
    checkout_error: Optional[str] = None

# ========================================
# VALIDACIÓN DE STOCK
# ========================================

class StockIssue(CartItem):
    """
    Item cuyo stock actual no alcanza lo pedido. `requested` es el total
    del producto entre todas sus variantes.
    """
    current_stock: int
    requested: int

class StockValidationResult(BaseModel):
    """Resultado de una reconciliación de stock del carrito."""
    performed: bool = True
    valid: bool = True
    skipped: bool = False
    error: Optional[str] = None
    out_of_stock_items: List[StockIssue] = []
    stock_updates: Dict[str, int] = {}
