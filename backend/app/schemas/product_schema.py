# backend/app/schemas/product_schema.py
"""
Esquemas Pydantic para los modelos Product y ProductVariant.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict

# ========================================
# ESQUEMAS AUXILIARES
# ========================================

class ProductVariantResponse(BaseModel):
    """Variante de un producto; sin precio propio usa el del producto."""
    variant_id: str
    name: str
    price: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


# ========================================
# ESQUEMA DE RESPUESTA
# ========================================

class ProductResponse(BaseModel):
    """Esquema de respuesta para un producto del catálogo."""
    product_id: str
    name: str
    description: Optional[str] = None
    price: float
    stock: int = 0
    active: bool = True
    shipping_rule_ids: List[str] = []
    variants: List[ProductVariantResponse] = []

    model_config = ConfigDict(from_attributes=True)


class ProductStock(BaseModel):
    """Stock autoritativo de un producto."""
    product_id: str
    stock: int
